"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    EXIT_WARNINGS = 3
    PRECONDITION_FAILED = 4


class Actions(Enum):
    """Top-level operations exposed on the command line.

    Args:
        Enum (string): Operation names.
    """

    REPORT = "report"
    UPDATE = "update"
    CLEAN = "clean"
    SELECT = "select"


class BackendPreference(Enum):
    """Which package backend generation to use.

    Args:
        Enum (string): Backend preference values accepted in config and CLI.
    """

    AUTO = "auto"
    LEGACY = "legacy"
    MODERN = "modern"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    APP_NAME = "modmgr"
    SUPPORTED_ACTIONS = [a.value for a in Actions]
    SUPPORTED_BACKENDS = [b.value for b in BackendPreference]
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

    # Environment variables
    ENV_LOG_LEVEL = "MODMGR_LOG_LEVEL"
    ENV_CONFIG = "MODMGR_CONFIG"

    # Registry feed
    REGISTRY_URL_GALLERY = "https://www.powershellgallery.com/api/v2"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3

    # PowerShell host
    POWERSHELL_EXECUTABLES = ["pwsh", "powershell"]
    POWERSHELL_HOST_PROCESSES = ["pwsh", "pwsh.exe", "powershell", "powershell.exe", "powershell_ise.exe"]
    MODERN_BACKEND_MARKER = "Install-PSResource"
    JSON_DEPTH = 5

    # Selector
    GRID_COLUMNS = 3
    ALL_VERSIONS = "All"
