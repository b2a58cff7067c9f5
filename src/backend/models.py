"""Data models shared by the package backends and the module manager."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple
from urllib.parse import urlparse


class InstallScope(Enum):
    """Installation visibility of a package."""
    CURRENT_USER = "CurrentUser"
    ALL_USERS = "AllUsers"

    def toggled(self) -> "InstallScope":
        """Return the other scope."""
        if self is InstallScope.CURRENT_USER:
            return InstallScope.ALL_USERS
        return InstallScope.CURRENT_USER


def url_authority(url: Optional[str]) -> Optional[str]:
    """Host portion of a registry URL, lower-cased; None when absent."""
    if not url:
        return None
    host = urlparse(url.strip()).hostname
    return host.lower() if host else None


@dataclass(frozen=True)
class Dependency:
    """A declared dependency of an installed package."""
    name: str
    version_constraint: Optional[str] = None
    prerelease: bool = False


@dataclass(frozen=True)
class InstalledPackage:
    """One installed version of a package as reported by a backend."""
    name: str
    version: str
    path: Optional[str]
    scope: InstallScope
    repository: Optional[str] = None
    dependencies: Tuple[Dependency, ...] = field(default_factory=tuple)

    @property
    def source_authority(self) -> Optional[str]:
        """Host of the registry the package was installed from."""
        return url_authority(self.repository)

    @property
    def has_provenance(self) -> bool:
        """True when the package manager recorded where the package came from."""
        return self.source_authority is not None


@dataclass(frozen=True)
class OperationResult:
    """Outcome of a successful mutating backend call."""
    name: str
    action: str
    version: Optional[str] = None
