"""Runtime settings: defaults, YAML config file and CLI overrides.

Precedence is CLI flag > config file > built-in default. The config file is
found via ``-c/--config`` or the ``MODMGR_CONFIG`` environment variable.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional

import yaml

from backend.models import InstallScope
from constants import Constants
from errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    """Effective runtime settings."""

    catalog: Optional[str] = None
    backend: str = "auto"
    columns: int = Constants.GRID_COLUMNS
    scope: str = InstallScope.CURRENT_USER.value
    allow_prerelease: bool = False
    powershell: Optional[str] = None
    powershell_timeout: Optional[float] = None
    request_timeout: float = Constants.REQUEST_TIMEOUT
    log_level: str = "INFO"

    @property
    def install_scope(self) -> InstallScope:
        """Configured default install scope."""
        return InstallScope(self.scope)


_FIELD_NAMES = {f.name for f in fields(Settings)}

# CLI attribute name -> settings field
_CLI_OVERRIDES = {
    "CATALOG": "catalog",
    "BACKEND": "backend",
    "COLUMNS": "columns",
    "SCOPE": "scope",
    "PRERELEASE": "allow_prerelease",
    "POWERSHELL": "powershell",
    "LOG_LEVEL": "log_level",
}


def load_config_file(config_path: Optional[str]) -> Dict[str, Any]:
    """Load the config mapping from a YAML file.

    Args:
        config_path: Path to the YAML config file, or None.

    Returns:
        The config mapping; empty when no path is given.

    Raises:
        ConfigError: The file is missing, unreadable, or not a mapping.
    """
    if not config_path:
        return {}
    if not os.path.isfile(config_path):
        raise ConfigError(f"Config file not found: {config_path}")
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to load config {config_path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")
    return data


def _seconds(key: str, value: Any, optional: bool = False) -> Optional[float]:
    if value is None and optional:
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{key} must be a number of seconds, got {value!r}") from e
    if seconds <= 0:
        raise ConfigError(f"{key} must be positive")
    return seconds


def _validate(settings: Settings) -> Settings:
    if settings.backend not in Constants.SUPPORTED_BACKENDS:
        raise ConfigError(
            f"Unsupported backend '{settings.backend}', expected one of {', '.join(Constants.SUPPORTED_BACKENDS)}"
        )
    try:
        InstallScope(settings.scope)
    except ValueError as e:
        raise ConfigError(f"Unsupported scope '{settings.scope}'") from e
    try:
        columns = int(settings.columns)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"columns must be an integer, got {settings.columns!r}") from e
    if columns < 1:
        raise ConfigError("columns must be at least 1")
    return replace(
        settings,
        columns=columns,
        powershell_timeout=_seconds("powershell_timeout", settings.powershell_timeout, optional=True),
        request_timeout=_seconds("request_timeout", settings.request_timeout),
    )


def build_settings(args: Any = None, config: Optional[Dict[str, Any]] = None) -> Settings:
    """Merge defaults, config file values and CLI overrides.

    Args:
        args: Parsed CLI namespace (attributes in the upper-case ``dest`` style).
        config: Mapping loaded from the config file.

    Raises:
        ConfigError: On unknown keys or invalid values.
    """
    values: Dict[str, Any] = {}
    for key, value in (config or {}).items():
        if key not in _FIELD_NAMES:
            raise ConfigError(f"Unknown config key: {key}")
        values[key] = value

    for attr, field_name in _CLI_OVERRIDES.items():
        value = getattr(args, attr, None) if args is not None else None
        # store_true flags only override when set
        if value is None or value is False:
            continue
        values[field_name] = value

    settings = _validate(Settings(**values))
    logger.debug("Effective settings: %s", settings)
    return settings


def resolve_config_path(args: Any = None) -> Optional[str]:
    """Config path from the CLI, falling back to the environment."""
    path = getattr(args, "CONFIG", None) if args is not None else None
    return path or os.environ.get(Constants.ENV_CONFIG) or None
