"""Per-module isolation for batch operations.

Every mutating backend call in a batch goes through ``attempt`` so that a
failure for one module is logged and recorded, never raised to the batch.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from backend.models import OperationResult
from constants import Constants
from errors import BackendError

logger = logging.getLogger(__name__)

_REASONS = {
    "permission": "requires elevated privileges",
    "in_use": "skipped, module is in use",
    "dependency": "skipped, other modules depend on it",
}


@dataclass(frozen=True)
class BatchOutcome:
    """Result of one install/update/uninstall step."""
    name: str
    action: str
    version: Optional[str] = None
    ok: bool = True
    error: Optional[str] = None
    kind: Optional[str] = None

    def describe(self) -> str:
        """One-line human-readable summary."""
        if self.version == Constants.ALL_VERSIONS:
            target = f"{self.name} (all versions)"
        else:
            target = f"{self.name} {self.version}" if self.version else self.name
        if self.ok:
            past = {"install": "installed", "update": "updated", "uninstall": "uninstalled"}.get(self.action, self.action)
            return f"{past}: {target}"
        return f"{self.action} failed: {target} ({self.error})"


def log_backend_failure(action: str, exc: BackendError) -> None:
    """Log a backend failure: classified kinds as warnings, anything else as an error."""
    target = exc.module or "?"
    if exc.version:
        target = f"{target} {exc.version}"
    reason = _REASONS.get(exc.kind)
    if reason is None:
        logger.error("%s of %s failed: %s", action.capitalize(), target, exc.message)
    else:
        logger.warning("%s of %s %s: %s", action.capitalize(), target, reason, exc.message)


def attempt(action: str, name: str, version: Optional[str], call: Callable[[], OperationResult]) -> BatchOutcome:
    """Run one backend call, converting a BackendError into a failed outcome."""
    try:
        result = call()
    except BackendError as exc:
        if exc.module is None:
            exc.module = name
        if exc.version is None:
            exc.version = version
        log_backend_failure(action, exc)
        return BatchOutcome(name=name, action=action, version=version, ok=False, error=exc.message, kind=exc.kind)
    outcome = BatchOutcome(name=name, action=action, version=result.version or version)
    logger.info(outcome.describe())
    return outcome
