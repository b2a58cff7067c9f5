"""modmgr - PowerShell module lifecycle manager

    Reports, updates, cleans and interactively selects the PowerShell
    modules listed in a catalog, through whichever package backend
    generation the host provides.

    Returns:
        int: Exit code
"""
import logging
import sys

from args import parse_args
from backend import PowerShellRunner, select_backend
from catalog import load_catalog
from cli_config import build_settings, load_config_file, resolve_config_path
from common.logging_utils import Timer, configure_logging, extra_context, is_debug_enabled
from constants import Actions, ExitCodes
from errors import BackendError, CatalogError, ConfigError, PreconditionError
from manager import ModuleStatus, clean_all, export_csv, export_json, report_all, run_selector, update_all
from registry.gallery import GalleryClient
from session import SessionContext

logger = logging.getLogger(__name__)


def output_format(args):
    """Export format from --format, else the --output extension, else json."""
    if getattr(args, "OUTPUT_FORMAT", None):
        return args.OUTPUT_FORMAT.lower()
    if str(args.OUTPUT).lower().endswith(".csv"):
        return "csv"
    return "json"


def export_reports(args, reports):
    """Write the report file requested with --output."""
    try:
        if output_format(args) == "csv":
            export_csv(reports, args.OUTPUT)
        else:
            export_json(reports, args.OUTPUT)
    except OSError as e:
        logging.error("Export to %s failed: %s", args.OUTPUT, e)
        sys.exit(ExitCodes.FILE_ERROR.value)


def run_report(ctx, args):
    """Report action; returns True when warnings are present."""
    reports = report_all(ctx, include_missing=bool(getattr(args, "INCLUDE_MISSING", False)))
    if getattr(args, "OUTPUT", None):
        export_reports(args, reports)

    installed = [r for r in reports if r.status is not ModuleStatus.NOT_INSTALLED]
    if installed and all(r.status is ModuleStatus.UNKNOWN and r.remote is None for r in installed):
        logging.error("No module could be checked against its registry.")
        sys.exit(ExitCodes.CONNECTION_ERROR.value)

    outdated = [r for r in installed if r.status is ModuleStatus.OUTDATED]
    unknown = [r for r in installed if r.status is ModuleStatus.UNKNOWN]
    if outdated:
        logging.warning("%d module(s) are outdated.", len(outdated))
    if unknown:
        logging.warning("%d module(s) could not be checked.", len(unknown))
    return bool(outdated or unknown)


def run_batch(ctx, action):
    """Update, clean or select action; returns True when any step failed."""
    if action == Actions.UPDATE.value:
        outcomes = update_all(ctx)
    elif action == Actions.CLEAN.value:
        outcomes = clean_all(ctx)
    else:
        if not sys.stdin.isatty():
            logging.error("The selector needs an interactive terminal.")
            sys.exit(ExitCodes.FILE_ERROR.value)
        outcomes = run_selector(ctx)

    failed = [o for o in outcomes if not o.ok]
    done = len(outcomes) - len(failed)
    logging.info("%s finished: %d change(s), %d failure(s).", action.capitalize(), done, len(failed))
    return bool(failed)


def build_context(args):
    """Load settings and catalog, pick the backend and build the session context."""
    try:
        config = load_config_file(resolve_config_path(args))
        settings = build_settings(args, config)
        catalog = load_catalog(settings.catalog)
    except (ConfigError, CatalogError) as e:
        logging.error("%s, aborting", e)
        sys.exit(ExitCodes.FILE_ERROR.value)

    # A config-file log level applies when the CLI did not set one.
    if not getattr(args, "LOG_LEVEL", None) and "log_level" in config:
        logging.getLogger().setLevel(getattr(logging, str(settings.log_level).upper(), logging.INFO))

    try:
        runner = PowerShellRunner(settings.powershell, timeout=settings.powershell_timeout)
        backend = select_backend(
            runner,
            settings.backend,
            registry=GalleryClient(timeout=settings.request_timeout),
        )
    except BackendError as e:
        logging.error("No usable PowerShell package backend: %s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)

    logging.info("Catalog loaded: %d module(s).", len(catalog))
    return SessionContext.create(catalog, backend, settings)


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    configure_logging(getattr(args, "LOG_LEVEL", None), getattr(args, "LOG_FILE", None))

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action=args.action)
        )

    logging.info("Arguments parsed.")
    logging.info(r"""
  modmgr - PowerShell Module Lifecycle Manager
""")

    ctx = build_context(args)

    with Timer() as timer:
        try:
            if args.action == Actions.REPORT.value:
                has_warnings = run_report(ctx, args)
            else:
                has_warnings = run_batch(ctx, args.action)
        except PreconditionError as e:
            logging.warning("%s", e)
            sys.exit(ExitCodes.PRECONDITION_FAILED.value)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI finished",
            extra=extra_context(
                event="function_exit",
                component="cli",
                action=args.action,
                outcome="warnings" if has_warnings else "success",
                duration_ms=timer.duration_ms(),
            )
        )

    if has_warnings and getattr(args, "ERROR_ON_WARNINGS", False):
        logging.error("Warnings present, exiting with non-zero status code.")
        sys.exit(ExitCodes.EXIT_WARNINGS.value)

    sys.exit(ExitCodes.SUCCESS.value)

if __name__ == "__main__":
    main()
