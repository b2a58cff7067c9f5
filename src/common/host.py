"""Facts about the host process: elevation, home directory, running PowerShell sessions."""
from __future__ import annotations

import ctypes
import logging
import os
from pathlib import Path
from typing import Iterable, Optional

import psutil

from constants import Constants

logger = logging.getLogger(__name__)


def is_elevated() -> bool:
    """Return True when the process runs with administrative privileges."""
    if os.name == "nt":
        try:
            return bool(ctypes.windll.shell32.IsUserAnAdmin())  # type: ignore[attr-defined]
        except (AttributeError, OSError):
            return False
    return os.geteuid() == 0


def home_directory() -> Path:
    """Current user's home directory."""
    return Path.home()


def is_under_home(path: Optional[str], home: Optional[Path] = None) -> bool:
    """Return True if ``path`` lies inside the user's home directory.

    Comparison is case-insensitive on Windows via ``os.path.normcase``.
    """
    if not path:
        return False
    base = os.path.normcase(os.path.abspath(str(home or home_directory())))
    target = os.path.normcase(os.path.abspath(path))
    try:
        return os.path.commonpath([base, target]) == base
    except ValueError:
        # Different drives on Windows
        return False


def count_host_sessions(names: Iterable[str] = Constants.POWERSHELL_HOST_PROCESSES) -> int:
    """Count running PowerShell host processes."""
    wanted = {n.lower() for n in names}
    count = 0
    for proc in psutil.process_iter(["name"]):
        try:
            name = (proc.info.get("name") or "").lower()
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
        if name in wanted:
            count += 1
    logger.debug("Found %d PowerShell host session(s)", count)
    return count
