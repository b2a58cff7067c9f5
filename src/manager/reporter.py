"""Outdated detection and reporting.

Each module is classified as OK, Outdated, Unknown or NotInstalled by
comparing the scanner's installed version with the registry's newest
version. Results stream to the log as each module is processed.
"""
from __future__ import annotations

import csv
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from catalog import ModuleDescriptor
from errors import BackendError, ParseError, RegistryUnavailable
from session import SessionContext
from versioning import is_newer
from .scanner import scan

logger = logging.getLogger(__name__)


class ModuleStatus(Enum):
    """Classification of one module against its registry."""
    OK = "OK"
    OUTDATED = "Outdated"
    UNKNOWN = "Unknown"
    NOT_INSTALLED = "NotInstalled"


@dataclass(frozen=True)
class ModuleReport:
    """Local vs remote comparison for one module."""
    descriptor: ModuleDescriptor
    status: ModuleStatus
    local: Optional[str] = None
    remote: Optional[str] = None
    notice: Optional[str] = None

    @property
    def name(self) -> str:
        return self.descriptor.name


def replacement_notice(descriptor: ModuleDescriptor) -> Optional[str]:
    """Informational notice for modules that have a successor."""
    if descriptor.replaced_by:
        return f"{descriptor.name} has been replaced by {descriptor.replaced_by}; consider switching."
    return None


def classify(local: Optional[str], remote: Optional[str]) -> ModuleStatus:
    """Status for an installed module given both versions.

    Local-ahead-of-remote (e.g. a side-loaded prerelease build) counts as OK.
    """
    if not local or not remote:
        return ModuleStatus.UNKNOWN
    try:
        return ModuleStatus.OUTDATED if is_newer(remote, local) else ModuleStatus.OK
    except ParseError as exc:
        logger.debug("Cannot compare %s with %s: %s", local, remote, exc)
        return ModuleStatus.UNKNOWN


def report(ctx: SessionContext, descriptor: ModuleDescriptor) -> ModuleReport:
    """Build the report for one catalog module."""
    notice = replacement_notice(descriptor)
    result = scan(ctx, descriptor)
    if not result.installed:
        return ModuleReport(descriptor=descriptor, status=ModuleStatus.NOT_INSTALLED, notice=notice)

    local = result.version
    remote = None
    try:
        info = ctx.backend.find(descriptor.name, descriptor.repository, prerelease=ctx.allow_prerelease)
        remote = info.version if info else None
    except RegistryUnavailable as exc:
        logger.warning("%s: registry unavailable, status unknown (%s)", descriptor.name, exc)

    return ModuleReport(
        descriptor=descriptor,
        status=classify(local, remote),
        local=local,
        remote=remote,
        notice=notice,
    )


def _log_report(item: ModuleReport) -> None:
    if item.status is ModuleStatus.NOT_INSTALLED:
        logger.info("%-45s %-16s %-16s %s", item.name, "-", "-", item.status.value)
    else:
        logger.info(
            "%-45s %-16s %-16s %s",
            item.name, item.local or "?", item.remote or "?", item.status.value,
        )
    if item.notice and item.status is not ModuleStatus.NOT_INSTALLED:
        logger.warning(item.notice)


def report_all(ctx: SessionContext, include_missing: bool = False) -> List[ModuleReport]:
    """Report every catalog module, streaming one log line per module.

    Not-installed modules are only listed when ``include_missing`` is set.
    Nothing raised by the backend for one module stops the rest.
    """
    logger.info("%-45s %-16s %-16s %s", "Module", "Installed", "Latest", "Status")
    results = []
    for descriptor in ctx.catalog:
        try:
            item = report(ctx, descriptor)
        except BackendError as exc:
            logger.error("%s: could not be checked: %s", descriptor.name, exc)
            item = ModuleReport(descriptor=descriptor, status=ModuleStatus.UNKNOWN,
                                notice=replacement_notice(descriptor))
        if item.status is ModuleStatus.NOT_INSTALLED and not include_missing:
            continue
        _log_report(item)
        results.append(item)
    return results


def export_json(reports: List[ModuleReport], path: str) -> None:
    """Export reports to a JSON file.

    Raises:
        OSError: The file could not be written.
    """
    data = [
        {
            "module": r.name,
            "description": r.descriptor.description,
            "repository": r.descriptor.repository,
            "installedVersion": r.local,
            "latestVersion": r.remote,
            "status": r.status.value,
            "replacedBy": r.descriptor.replaced_by,
        }
        for r in reports
    ]
    with open(path, "w", encoding="utf-8") as file:
        json.dump(data, file, ensure_ascii=False, indent=4)
    logger.info("JSON file has been successfully exported at: %s", path)


def export_csv(reports: List[ModuleReport], path: str) -> None:
    """Export reports to a CSV file.

    Raises:
        OSError: The file could not be written.
    """
    headers = ["Module", "Description", "Repository", "Installed Version", "Latest Version", "Status", "Replaced By"]

    def _nv(v):
        return "" if v is None else v

    rows = [headers]
    for r in reports:
        rows.append([
            r.name,
            r.descriptor.description,
            r.descriptor.repository,
            _nv(r.local),
            _nv(r.remote),
            r.status.value,
            _nv(r.descriptor.replaced_by),
        ])
    with open(path, "w", newline="", encoding="utf-8") as file:
        csv.writer(file).writerows(rows)
    logger.info("CSV file has been successfully exported at: %s", path)
