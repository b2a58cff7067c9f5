"""Argument parsing functionality for modmgr."""

import argparse
from constants import Constants

def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog=Constants.APP_NAME,
        description=(
            "modmgr - PowerShell module lifecycle manager"
        ),
        add_help=True,
    )

    parser.add_argument("action",
                        help="Operation to run: report, update, clean or select",
                        type=str.lower,
                        choices=Constants.SUPPORTED_ACTIONS)

    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML)",
                        action="store",
                        type=str)
    parser.add_argument("--catalog",
                        dest="CATALOG",
                        help="Path to a module catalog file (YAML); defaults to the bundled catalog",
                        action="store",
                        type=str)
    parser.add_argument("--backend",
                        dest="BACKEND",
                        help="Package backend: auto (probe), legacy or modern",
                        action="store",
                        type=str.lower,
                        choices=Constants.SUPPORTED_BACKENDS)
    parser.add_argument("--scope",
                        dest="SCOPE",
                        help="Install scope for new installs",
                        action="store",
                        type=str,
                        choices=["CurrentUser", "AllUsers"])
    parser.add_argument("--prerelease",
                        dest="PRERELEASE",
                        help="Consider prerelease versions when looking for updates and installing.",
                        action="store_true")
    parser.add_argument("--columns",
                        dest="COLUMNS",
                        help="Number of columns in the interactive selector grid",
                        action="store",
                        type=int)
    parser.add_argument("--powershell",
                        dest="POWERSHELL",
                        help="PowerShell executable to use (default: pwsh, then powershell)",
                        action="store",
                        type=str)

    parser.add_argument("-a", "--all",
                        dest="INCLUDE_MISSING",
                        help="Include catalog modules that are not installed in the report.",
                        action="store_true")
    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Path to output file (JSON or CSV)",
                        action="store",
                        type=str)
    parser.add_argument("-f", "--format",
                        dest="OUTPUT_FORMAT",
                        help="Output format (json or csv). If not specified, inferred from --output extension; defaults to json.",
                        action="store",
                        type=str.lower,
                        choices=['json', 'csv'])

    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'])
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("--error-on-warnings",
                        dest="ERROR_ON_WARNINGS",
                        help="Exit with a non-zero status code if any module failed, is outdated or unknown.",
                        action="store_true")

    return parser.parse_args(argv)
