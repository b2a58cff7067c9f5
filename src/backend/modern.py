"""PSResourceGet backend (Install-PSResource / Update-PSResource / Uninstall-PSResource)."""
from __future__ import annotations

from typing import Optional

from constants import Constants
from .base import PackageBackend, VERSION_PROJECTION, projection
from .models import InstallScope
from .shell import quote_ps


class ModernBackend(PackageBackend):
    """Package backend driving the Microsoft.PowerShell.PSResourceGet cmdlets."""

    generation = "modern"

    def _list_script(self, name: str, scope: Optional[InstallScope]) -> str:
        parts = [f"Get-InstalledPSResource -Name {quote_ps(name)}"]
        if scope is not None:
            parts.append(f"-Scope {scope.value}")
        parts.append("-ErrorAction SilentlyContinue")
        return " ".join(parts) + " | " + projection("Prerelease", "InstalledLocation", "Dependencies", "VersionRange")

    def _install_script(self, name: str, scope: InstallScope, prerelease: bool, allow_clobber: bool) -> str:
        parts = [f"Install-PSResource -Name {quote_ps(name)}", f"-Scope {scope.value}",
                 "-TrustRepository", "-PassThru"]
        if not allow_clobber:
            parts.append("-NoClobber")
        if prerelease:
            parts.append("-Prerelease")
        return " ".join(parts) + " | " + VERSION_PROJECTION

    def _update_script(self, name: str, scope: Optional[InstallScope], prerelease: bool) -> str:
        parts = [f"Update-PSResource -Name {quote_ps(name)}", "-TrustRepository", "-PassThru"]
        if scope is not None:
            parts.append(f"-Scope {scope.value}")
        if prerelease:
            parts.append("-Prerelease")
        return " ".join(parts) + " | " + VERSION_PROJECTION

    def _uninstall_script(self, name: str, version: str, scope: Optional[InstallScope], prerelease: bool) -> str:
        target = "*" if version == Constants.ALL_VERSIONS else version
        parts = [f"Uninstall-PSResource -Name {quote_ps(name)}", f"-Version {quote_ps(target)}"]
        if scope is not None:
            parts.append(f"-Scope {scope.value}")
        if prerelease:
            parts.append("-Prerelease")
        return " ".join(parts)
