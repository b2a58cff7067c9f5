"""Package backend abstraction.

Two mutually exclusive generations are supported:
- legacy.py: PowerShellGet v2 cmdlets
- modern.py: PSResourceGet cmdlets

``select_backend`` probes once for the modern generation's marker command;
the returned instance is kept on the session and never re-probed.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from constants import BackendPreference, Constants
from registry.gallery import GalleryClient, RemotePackageInfo
from .base import PackageBackend
from .legacy import LegacyBackend
from .models import (
    Dependency,
    InstallScope,
    InstalledPackage,
    OperationResult,
    url_authority,
)
from .modern import ModernBackend
from .shell import PowerShellRunner

logger = logging.getLogger(__name__)


def select_backend(
    runner: PowerShellRunner,
    preference: str = BackendPreference.AUTO.value,
    registry: Optional[GalleryClient] = None,
    home: Optional[Path] = None,
) -> PackageBackend:
    """Pick the backend generation for this process.

    Args:
        runner: PowerShell runner shared by the backend.
        preference: "auto" probes for the modern marker command; "legacy" or
            "modern" force a generation without probing.
        registry: Optional feed client passed to the backend.
        home: Optional home directory for the scope heuristic.
    """
    pref = BackendPreference(preference)
    if pref is BackendPreference.AUTO:
        modern = runner.has_command(Constants.MODERN_BACKEND_MARKER)
        logger.debug("Probed for %s: %s", Constants.MODERN_BACKEND_MARKER, modern)
    else:
        modern = pref is BackendPreference.MODERN

    backend_cls = ModernBackend if modern else LegacyBackend
    backend = backend_cls(runner, registry=registry, home=home)
    logger.info("Using %s package backend.", backend.generation)
    return backend


__all__ = [
    "Dependency",
    "InstallScope",
    "InstalledPackage",
    "LegacyBackend",
    "ModernBackend",
    "OperationResult",
    "PackageBackend",
    "PowerShellRunner",
    "RemotePackageInfo",
    "select_backend",
    "url_authority",
]
