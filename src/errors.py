"""Exception hierarchy shared by the module manager.

Batch operations isolate every module: anything derived from
``BackendError`` or ``RegistryUnavailable`` is caught at the per-module
boundary and logged, never propagated to the caller of the batch.
"""
from __future__ import annotations

import re
from typing import Optional, Type


class ModuleManagerError(Exception):
    """Base class for all module manager errors."""


class PreconditionError(ModuleManagerError):
    """A batch operation was requested without a required precondition (elevation)."""


class ParseError(ModuleManagerError, ValueError):
    """A version string could not be parsed."""


class CatalogError(ModuleManagerError):
    """The module catalog file is missing or malformed."""


class ConfigError(ModuleManagerError):
    """The configuration file is malformed."""


class RegistryUnavailable(ModuleManagerError):
    """The remote registry feed could not be queried."""


class BackendError(ModuleManagerError):
    """A package backend call failed.

    Args:
        message: Original message reported by the backend.
        module: Module name the call was made for.
        version: Version the call targeted, if any.
    """

    kind = "unknown"

    def __init__(self, message: str, module: Optional[str] = None, version: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.module = module
        self.version = version


class BackendPermissionError(BackendError):
    """Elevation is required for the requested change."""

    kind = "permission"


class BackendInUseError(BackendError):
    """The module is loaded or locked by another process."""

    kind = "in_use"


class BackendDependencyError(BackendError):
    """Other installed packages depend on the targeted version."""

    kind = "dependency"


class BackendUnknownError(BackendError):
    """Any backend failure that does not match a known kind."""


class BackendUnavailableError(BackendError):
    """No usable PowerShell host was found."""

    kind = "unavailable"


# Checked in order; first match wins.
_FAILURE_PATTERNS = [
    (BackendPermissionError, re.compile(
        r"administrator rights|access to the path .* is denied|unauthorizedaccess"
        r"|requires elevation|run as administrator|permission denied",
        re.IGNORECASE,
    )),
    (BackendInUseError, re.compile(
        r"currently in use|is in use|being used by another process|is loaded",
        re.IGNORECASE,
    )),
    (BackendDependencyError, re.compile(
        r"dependent on this module|depend(s)? on (it|this)|is a dependency for"
        r"|required by|other modules? depend",
        re.IGNORECASE,
    )),
]


def classify_backend_failure(message: str) -> Type[BackendError]:
    """Return the BackendError subclass matching a backend failure message."""
    for error_type, pattern in _FAILURE_PATTERNS:
        if pattern.search(message or ""):
            return error_type
    return BackendUnknownError
