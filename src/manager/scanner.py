"""Determine installed state, scope and version of catalog modules."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

from backend.models import InstallScope, InstalledPackage
from catalog import ModuleDescriptor
from common.logging_utils import extra_context, is_debug_enabled
from errors import ParseError
from session import SessionContext
from versioning import parse

logger = logging.getLogger(__name__)

# Numeric runs are zero-padded to this width so 1.2 and 1.2.0 sort together.
_KEY_WIDTH = 8


@dataclass(frozen=True)
class ScanResult:
    """Installed state of one catalog module.

    ``foreign`` holds same-named records rejected because they were not
    installed from the descriptor's registry (or carry no provenance).
    """
    installed: bool
    record: Optional[InstalledPackage] = None
    scope: Optional[InstallScope] = None
    foreign: Tuple[InstalledPackage, ...] = field(default_factory=tuple)

    @property
    def version(self) -> Optional[str]:
        """Installed version of the selected record."""
        return self.record.version if self.record else None


def _version_key(record: InstalledPackage):
    # Unparsable versions rank below every parsable one.
    try:
        token = parse(record.version)
    except ParseError:
        return (0, (), 0, 0)
    return (1,) + token.sort_key(_KEY_WIDTH)


def newest_first(records: List[InstalledPackage]) -> List[InstalledPackage]:
    """Order records by version, newest first."""
    return sorted(records, key=_version_key, reverse=True)


def matching_records(
    records: List[InstalledPackage], authority: Optional[str]
) -> Tuple[List[InstalledPackage], List[InstalledPackage]]:
    """Split records into (installed from ``authority``, everything else)."""
    wanted = (authority or "").lower()
    matched, foreign = [], []
    for record in records:
        if wanted and record.source_authority == wanted:
            matched.append(record)
        else:
            foreign.append(record)
    return matched, foreign


def installed_versions(ctx: SessionContext, name: str, authority: Optional[str]) -> List[InstalledPackage]:
    """All installed records of ``name`` from ``authority``, newest first."""
    records = ctx.backend.list_installed(name, all_scopes=True)
    matched, _ = matching_records(records, authority)
    return newest_first(matched)


def scan(ctx: SessionContext, descriptor: ModuleDescriptor) -> ScanResult:
    """Query the backend and resolve the installed record for ``descriptor``.

    Only records whose source authority equals the descriptor's registry
    authority count; among those the highest version wins. Scope comes from
    the record's install path (see ``backend.base.infer_scope``).
    """
    records = ctx.backend.list_installed(descriptor.name, all_scopes=True)
    matched, foreign = matching_records(records, descriptor.authority)

    if is_debug_enabled(logger):
        logger.debug(
            "Scanned module",
            extra=extra_context(
                event="scan",
                component="scanner",
                target=descriptor.name,
                count=len(records),
                matched=len(matched),
            ),
        )
    if foreign:
        logger.debug(
            "%s: ignoring %d record(s) not installed from %s",
            descriptor.name, len(foreign), descriptor.authority,
        )
    if not matched:
        return ScanResult(installed=False, foreign=tuple(foreign))

    record = newest_first(matched)[0]
    return ScanResult(installed=True, record=record, scope=record.scope, foreign=tuple(foreign))


def scan_all(ctx: SessionContext) -> Iterator[Tuple[ModuleDescriptor, ScanResult]]:
    """Scan every catalog module in catalog order."""
    for descriptor in ctx.catalog:
        yield descriptor, scan(ctx, descriptor)
