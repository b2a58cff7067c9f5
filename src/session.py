"""Session context owned by the orchestrator and passed to every component."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from backend import PackageBackend
from backend.models import InstallScope
from catalog import ModuleDescriptor
from cli_config import Settings


@dataclass
class SessionContext:
    """Everything a component needs for one run: catalog, backend and settings.

    ``scope`` and ``allow_prerelease`` start from the settings and may be
    changed during an interactive session.
    """

    catalog: Tuple[ModuleDescriptor, ...]
    backend: PackageBackend
    settings: Settings
    scope: InstallScope = InstallScope.CURRENT_USER
    allow_prerelease: bool = False

    @classmethod
    def create(cls, catalog, backend, settings: Settings) -> "SessionContext":
        """Build a context seeded from ``settings``."""
        return cls(
            catalog=tuple(catalog),
            backend=backend,
            settings=settings,
            scope=settings.install_scope,
            allow_prerelease=settings.allow_prerelease,
        )
