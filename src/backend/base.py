"""Capability interface shared by both package backend generations.

Subclasses only supply the PowerShell snippets for their generation; record
mapping, scope inference, registry lookups and the unload-before-mutate
step live here so both generations behave identically.
"""
from __future__ import annotations

import abc
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from common.host import is_under_home
from constants import Constants
from registry.gallery import GalleryClient, RemotePackageInfo
from .models import Dependency, InstallScope, InstalledPackage, OperationResult
from .shell import PowerShellRunner, quote_ps

logger = logging.getLogger(__name__)

# Shared projection: every listing script pipes its objects through this so
# both generations produce the same JSON shape.
RECORD_PROJECTION = (
    "ForEach-Object { [pscustomobject]@{ "
    "Name = $_.Name; Version = [string]$_.Version; Prerelease = $_.__PRERELEASE__; "
    "Path = [string]$_.__PATH__; Repository = [string]$_.RepositorySourceLocation; "
    "Dependencies = @($_.__DEPS__ | Where-Object { $_ } | ForEach-Object { "
    "if ($_ -is [string]) { [pscustomobject]@{ Name = $_; Version = $null } } "
    "elseif ($_ -is [hashtable]) { [pscustomobject]@{ Name = $_['Name']; "
    "Version = [string]($_['RequiredVersion'], $_['MinimumVersion'] | Where-Object { $_ } | Select-Object -First 1) } } "
    "else { [pscustomobject]@{ Name = $_.Name; Version = [string]$_.__DEPVER__ } } }) } }"
)

VERSION_PROJECTION = (
    "ForEach-Object { [pscustomobject]@{ Name = $_.Name; Version = [string]$_.Version; "
    "Prerelease = $_.Prerelease } }"
)


def projection(prerelease: str, path: str, deps: str, dep_version: str) -> str:
    """Fill the record projection with generation-specific property names."""
    return (RECORD_PROJECTION
            .replace("__PRERELEASE__", prerelease)
            .replace("__PATH__", path)
            .replace("__DEPS__", deps)
            .replace("__DEPVER__", dep_version))


def combine_version(version: Optional[str], prerelease: Optional[str]) -> Optional[str]:
    """Join a numeric version and a separate prerelease label (``1.2.0`` + ``preview3``)."""
    if not version:
        return None
    version = str(version).strip()
    if prerelease and "-" not in version:
        return f"{version}-{str(prerelease).strip()}"
    return version


def infer_scope(path: Optional[str], home: Optional[Path] = None) -> InstallScope:
    """Infer install scope from the install location.

    This is a heuristic: neither backend generation reports scope directly,
    so a path under the user's home directory is taken to mean CurrentUser
    and anything else AllUsers.
    """
    if is_under_home(path, home):
        return InstallScope.CURRENT_USER
    return InstallScope.ALL_USERS


class PackageBackend(abc.ABC):
    """Uniform query/find/install/update/uninstall operations over one backend generation.

    Args:
        runner: PowerShell runner used for every backend call.
        registry: Feed client used by ``find``; a default GalleryClient when omitted.
        home: Home directory used by the scope heuristic; the real one when omitted.
    """

    generation = ""

    def __init__(self, runner: PowerShellRunner, registry: Optional[GalleryClient] = None,
                 home: Optional[Path] = None):
        self.runner = runner
        self.registry = registry or GalleryClient()
        self.home = home

    def __repr__(self) -> str:
        return f"<{type(self).__name__} generation={self.generation}>"

    # ----- generation-specific scripts -----

    @abc.abstractmethod
    def _list_script(self, name: str, scope: Optional[InstallScope]) -> str:
        """Script listing installed versions of ``name``."""

    @abc.abstractmethod
    def _install_script(self, name: str, scope: InstallScope, prerelease: bool, allow_clobber: bool) -> str:
        """Script installing ``name``."""

    @abc.abstractmethod
    def _update_script(self, name: str, scope: Optional[InstallScope], prerelease: bool) -> str:
        """Script updating ``name`` in place."""

    @abc.abstractmethod
    def _uninstall_script(self, name: str, version: str, scope: Optional[InstallScope], prerelease: bool) -> str:
        """Script removing one version (or all versions) of ``name``."""

    # ----- shared helpers -----

    @staticmethod
    def _list_available_script(name: str) -> str:
        # Get-Module ships with PowerShell itself, so both generations share it.
        return (f"Get-Module -Name {quote_ps(name)} -ListAvailable | "
                + projection("PrivateData.PSData.Prerelease", "ModuleBase", "RequiredModules", "Version"))

    @staticmethod
    def _unload(name: str) -> str:
        """Prefix removing a loaded copy of the module from the host session."""
        return f"Remove-Module -Name {quote_ps(name)} -Force -ErrorAction SilentlyContinue; "

    def _record(self, row: Dict[str, Any]) -> InstalledPackage:
        path = row.get("Path") or None
        deps = []
        for dep in row.get("Dependencies") or []:
            if not isinstance(dep, dict) or not dep.get("Name"):
                continue
            constraint = dep.get("Version") or None
            deps.append(Dependency(
                name=dep["Name"],
                version_constraint=constraint,
                prerelease=bool(constraint and "-" in constraint),
            ))
        return InstalledPackage(
            name=row["Name"],
            version=combine_version(row.get("Version"), row.get("Prerelease")) or "",
            path=path,
            scope=infer_scope(path, self.home),
            repository=row.get("Repository") or None,
            dependencies=tuple(deps),
        )

    @staticmethod
    def _version_from_rows(rows: List[Any], name: str) -> Optional[str]:
        for row in reversed(rows):
            if isinstance(row, dict) and (row.get("Name") or "").lower() == name.lower():
                return combine_version(row.get("Version"), row.get("Prerelease"))
        return None

    # ----- capability interface -----

    def list_installed(self, name: str, list_available: bool = False, all_scopes: bool = True,
                       scope: Optional[InstallScope] = None) -> List[InstalledPackage]:
        """All installed versions of ``name``.

        Args:
            name: Package name.
            list_available: Use the module path listing instead of the package manager's
                own inventory; also reports packages it did not install.
            all_scopes: When False, only records in ``scope`` are returned.
            scope: Scope filter applied when ``all_scopes`` is False.
        """
        scope_filter = None if all_scopes else scope
        if list_available:
            script = self._list_available_script(name)
        else:
            script = self._list_script(name, scope_filter)
        rows = self.runner.run_json(script, module=name)
        records = [self._record(row) for row in rows if isinstance(row, dict) and row.get("Name")]
        if scope_filter is not None:
            records = [r for r in records if r.scope is scope_filter]
        logger.debug("%s backend listed %d record(s) for %s", self.generation, len(records), name)
        return records

    def find(self, name: str, repository: str = Constants.REGISTRY_URL_GALLERY,
             prerelease: bool = False) -> Optional[RemotePackageInfo]:
        """Newest version of ``name`` in ``repository``.

        Raises:
            RegistryUnavailable: The feed could not be queried.
        """
        return self.registry.find(name, repository, prerelease=prerelease)

    def install(self, name: str, scope: InstallScope = InstallScope.CURRENT_USER, prerelease: bool = False,
                allow_clobber: bool = True) -> OperationResult:
        """Install the newest version of ``name``."""
        rows = self.runner.run_json(self._install_script(name, scope, prerelease, allow_clobber), module=name)
        return OperationResult(name=name, action="install", version=self._version_from_rows(rows, name))

    def update(self, name: str, scope: Optional[InstallScope] = None, prerelease: bool = False) -> OperationResult:
        """Update ``name`` in place, unloading it from the host session first."""
        script = self._unload(name) + self._update_script(name, scope, prerelease)
        rows = self.runner.run_json(script, module=name)
        return OperationResult(name=name, action="update", version=self._version_from_rows(rows, name))

    def uninstall(self, name: str, version: Union[str, None] = Constants.ALL_VERSIONS,
                  scope: Optional[InstallScope] = None, prerelease: bool = False) -> OperationResult:
        """Uninstall one version of ``name``, or every version when ``version`` is "All"."""
        version = version or Constants.ALL_VERSIONS
        prerelease = prerelease or "-" in version
        script = self._unload(name) + self._uninstall_script(name, version, scope, prerelease)
        self.runner.run(script, module=name, version=version)
        return OperationResult(name=name, action="uninstall", version=version)
