"""PowerShellGet v2 backend (Install-Module / Update-Module / Uninstall-Module)."""
from __future__ import annotations

from typing import Optional

from constants import Constants
from .base import PackageBackend, VERSION_PROJECTION, projection
from .models import InstallScope
from .shell import quote_ps


class LegacyBackend(PackageBackend):
    """Package backend driving the PowerShellGet v2 cmdlets."""

    generation = "legacy"

    def _list_script(self, name: str, scope: Optional[InstallScope]) -> str:
        # Get-InstalledModule has no -Scope; filtering happens on the records.
        return (f"Get-InstalledModule -Name {quote_ps(name)} -AllVersions -AllowPrerelease "
                "-ErrorAction SilentlyContinue | "
                + projection("AdditionalMetadata.Prerelease", "InstalledLocation", "Dependencies", "Version"))

    def _install_script(self, name: str, scope: InstallScope, prerelease: bool, allow_clobber: bool) -> str:
        parts = [f"Install-Module -Name {quote_ps(name)}", f"-Scope {scope.value}", "-Force", "-PassThru"]
        if allow_clobber:
            parts.append("-AllowClobber")
        if prerelease:
            parts.append("-AllowPrerelease")
        return " ".join(parts) + " | " + VERSION_PROJECTION

    def _update_script(self, name: str, scope: Optional[InstallScope], prerelease: bool) -> str:
        parts = [f"Update-Module -Name {quote_ps(name)}", "-Force", "-PassThru"]
        if scope is not None:
            parts.append(f"-Scope {scope.value}")
        if prerelease:
            parts.append("-AllowPrerelease")
        return " ".join(parts) + " | " + VERSION_PROJECTION

    def _uninstall_script(self, name: str, version: str, scope: Optional[InstallScope], prerelease: bool) -> str:
        parts = [f"Uninstall-Module -Name {quote_ps(name)}", "-Force"]
        if version == Constants.ALL_VERSIONS:
            parts.append("-AllVersions")
        else:
            parts.append(f"-RequiredVersion {quote_ps(version)}")
        if prerelease:
            parts.append("-AllowPrerelease")
        return " ".join(parts)
