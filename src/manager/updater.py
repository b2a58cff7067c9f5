"""Upgrade outdated modules and remove superseded versions.

Both batches require an elevated process and process the catalog strictly
in order, one module fully settled (update plus cleanup) before the next.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Set

from catalog import ModuleDescriptor
from common import host
from errors import BackendError, ParseError, PreconditionError, RegistryUnavailable
from session import SessionContext
from versioning import compare, is_newer
from .batch import BatchOutcome, attempt, log_backend_failure
from .scanner import ScanResult, installed_versions, scan

logger = logging.getLogger(__name__)


def require_elevation(action: str) -> None:
    """Abort a batch before it touches anything when the process is not elevated.

    Raises:
        PreconditionError: The process lacks administrative privileges.
    """
    if not host.is_elevated():
        raise PreconditionError(f"{action} requires administrative privileges; no modules were changed.")


def warn_concurrent_sessions() -> None:
    """Warn when other PowerShell hosts run, since they may hold module files open."""
    sessions = host.count_host_sessions()
    if sessions > 1:
        logger.warning(
            "%d PowerShell sessions are running. Close the others before updating, "
            "loaded modules cannot be replaced safely.", sessions,
        )


def _same_version(a: str, b: str) -> bool:
    try:
        return compare(a, b) == 0
    except ParseError:
        return a == b


def remove_superseded(
    ctx: SessionContext,
    name: str,
    authority: Optional[str],
    _visited: Optional[Set[str]] = None,
) -> List[BatchOutcome]:
    """Uninstall every installed version of ``name`` except the newest.

    The same step cascades into each dependency declared by the newest
    version. Each module is visited once, so dependency cycles terminate.
    """
    visited = set() if _visited is None else _visited
    key = name.lower()
    if key in visited:
        return []
    visited.add(key)

    try:
        records = installed_versions(ctx, name, authority)
    except BackendError as exc:
        log_backend_failure("scan", exc)
        return []
    if not records:
        return []

    newest = records[0]
    outcomes = []
    for record in records[1:]:
        if _same_version(record.version, newest.version):
            continue
        outcomes.append(attempt(
            "uninstall", name, record.version,
            lambda r=record: ctx.backend.uninstall(name, r.version, scope=r.scope),
        ))

    for dependency in newest.dependencies:
        outcomes.extend(remove_superseded(ctx, dependency.name, authority, visited))
    return outcomes


def _side_loaded(ctx: SessionContext, descriptor: ModuleDescriptor, result: ScanResult) -> bool:
    """True when ``descriptor`` is present without registry provenance.

    The package manager's own inventory never reports side-loaded copies, so
    an empty inventory falls back to the module path listing.
    """
    candidates = list(result.foreign)
    if not candidates:
        try:
            candidates = ctx.backend.list_installed(descriptor.name, list_available=True)
        except BackendError as exc:
            logger.debug("%s: module path listing failed: %s", descriptor.name, exc.message)
            return False
    return any(not r.has_provenance for r in candidates)


def update_module(ctx: SessionContext, descriptor: ModuleDescriptor, allow_prerelease: bool) -> List[BatchOutcome]:
    """Update one module when the registry has a newer version, then clean up."""
    result = scan(ctx, descriptor)
    if not result.installed:
        if _side_loaded(ctx, descriptor, result):
            logger.info("%s: installed without registry provenance (side-loaded), skipping.", descriptor.name)
        else:
            logger.debug("%s: not installed, skipping.", descriptor.name)
        return []

    local = result.version
    try:
        info = ctx.backend.find(descriptor.name, descriptor.repository, prerelease=allow_prerelease)
    except RegistryUnavailable as exc:
        logger.warning("%-45s %-16s %-16s %s (%s)", descriptor.name, local, "?", "Unknown", exc)
        return []
    if info is None:
        logger.warning("%-45s %-16s %-16s %s (not found in %s)",
                       descriptor.name, local, "?", "Unknown", descriptor.repository)
        return []

    try:
        outdated = is_newer(info.version, local)
    except ParseError as exc:
        logger.warning("%-45s %-16s %-16s %s (%s)", descriptor.name, local, info.version, "Unknown", exc)
        return []

    logger.info("%-45s %-16s %-16s %s", descriptor.name, local, info.version, "Outdated" if outdated else "OK")
    if not outdated:
        return []

    record = result.record
    outcome = attempt(
        "update", descriptor.name, info.version,
        lambda: ctx.backend.update(descriptor.name, scope=record.scope, prerelease=allow_prerelease),
    )
    if not outcome.ok:
        return [outcome]
    return [outcome] + remove_superseded(ctx, descriptor.name, descriptor.authority)


def update_all(ctx: SessionContext, allow_prerelease: Optional[bool] = None) -> List[BatchOutcome]:
    """Update every outdated catalog module.

    Raises:
        PreconditionError: The process is not elevated; nothing was changed.
    """
    require_elevation("Update")
    warn_concurrent_sessions()
    prerelease = ctx.allow_prerelease if allow_prerelease is None else allow_prerelease

    outcomes: List[BatchOutcome] = []
    for descriptor in ctx.catalog:
        try:
            outcomes.extend(update_module(ctx, descriptor, prerelease))
        except BackendError as exc:
            log_backend_failure("update", exc)
            outcomes.append(BatchOutcome(name=descriptor.name, action="update", ok=False,
                                         error=exc.message, kind=exc.kind))
    return outcomes


def clean_all(ctx: SessionContext) -> List[BatchOutcome]:
    """Remove superseded versions of every installed catalog module.

    Raises:
        PreconditionError: The process is not elevated; nothing was changed.
    """
    require_elevation("Clean")
    warn_concurrent_sessions()

    outcomes: List[BatchOutcome] = []
    for descriptor in ctx.catalog:
        try:
            result = scan(ctx, descriptor)
        except BackendError as exc:
            log_backend_failure("scan", exc)
            continue
        if not result.installed:
            continue
        logger.info("Cleaning %s (keeping %s)", descriptor.name, result.version)
        outcomes.extend(remove_superseded(ctx, descriptor.name, descriptor.authority))
    return outcomes
