"""Registry feed client: query a NuGet v2 (PowerShell Gallery style) feed for a package.

The feed is an OData Atom document. ``FindPackagesById()`` returns every
published version of a package; results may be paged through ``next``
links. Unlisted packages are reported with a 1900 publish date and are
skipped.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple
from urllib.parse import quote
from xml.etree import ElementTree as ET

from common import http_client
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from constants import Constants
from errors import ParseError, RegistryUnavailable
from versioning import latest, parse

logger = logging.getLogger(__name__)

ATOM_NS = "{http://www.w3.org/2005/Atom}"
DATA_NS = "{http://schemas.microsoft.com/ado/2007/08/dataservices}"
META_NS = "{http://schemas.microsoft.com/ado/2007/08/dataservices/metadata}"
HEADERS_ATOM = {"Accept": "application/atom+xml,application/xml"}
UNLISTED_PREFIX = "1900-"
MAX_PAGES = 20


@dataclass(frozen=True)
class RemotePackageInfo:
    """Latest matching version of a package in a registry feed."""
    name: str
    version: str
    repository: str
    is_prerelease: bool = False
    published: Optional[str] = None


def _find_url(repository: str, name: str) -> str:
    base = repository.rstrip("/")
    return f"{base}/FindPackagesById()?id='{quote(name, safe='')}'"


def _prop(props: ET.Element, tag: str) -> Optional[str]:
    elem = props.find(f"{DATA_NS}{tag}")
    if elem is None or elem.text is None:
        return None
    return elem.text.strip()


def parse_feed(text: str) -> Tuple[List[dict], Optional[str]]:
    """Parse one Atom feed page.

    Returns:
        Tuple of (entries, next_page_url). Each entry is a dict with
        ``version``, ``is_prerelease`` and ``published``.

    Raises:
        RegistryUnavailable: If the document is not valid XML.
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        raise RegistryUnavailable(f"Malformed registry response: {exc}") from exc

    entries = []
    for entry in root.findall(f"{ATOM_NS}entry"):
        props = entry.find(f"{META_NS}properties")
        if props is None:
            continue
        version = _prop(props, "NormalizedVersion") or _prop(props, "Version")
        if not version:
            continue
        is_pre = (_prop(props, "IsPrerelease") or "false").lower() == "true"
        entries.append({
            "version": version,
            "is_prerelease": is_pre or "-" in version,
            "published": _prop(props, "Published"),
        })

    next_url = None
    for link in root.findall(f"{ATOM_NS}link"):
        if link.get("rel") == "next" and link.get("href"):
            next_url = link.get("href")
            break
    return entries, next_url


class GalleryClient:
    """Query NuGet v2 feeds for the newest version of a package."""

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = Constants.REQUEST_TIMEOUT if timeout is None else timeout

    def _pages(self, repository: str, name: str) -> Iterator[List[dict]]:
        url: Optional[str] = _find_url(repository, name)
        pages = 0
        while url and pages < MAX_PAGES:
            res = http_client.safe_get(url, context=name, timeout=self.timeout, headers=HEADERS_ATOM)
            if res.status_code == 404:
                return
            if res.status_code != 200:
                raise RegistryUnavailable(
                    f"{name}: registry {safe_url(url)} answered HTTP {res.status_code}"
                )
            entries, url = parse_feed(res.text)
            pages += 1
            yield entries

    def versions(self, name: str, repository: str, prerelease: bool = False) -> List[dict]:
        """All listed versions of ``name`` in the feed, prereleases only when asked."""
        found = []
        for page in self._pages(repository, name):
            for entry in page:
                if (entry["published"] or "").startswith(UNLISTED_PREFIX):
                    continue
                if entry["is_prerelease"] and not prerelease:
                    continue
                found.append(entry)
        return found

    def find(self, name: str, repository: str, prerelease: bool = False) -> Optional[RemotePackageInfo]:
        """Return the newest version of ``name`` in ``repository``, or None if absent.

        Raises:
            RegistryUnavailable: The feed could not be queried.
        """
        entries = self.versions(name, repository, prerelease=prerelease)
        parsable = []
        for entry in entries:
            try:
                parse(entry["version"])
            except ParseError:
                logger.debug("Ignoring unparsable registry version %s for %s", entry["version"], name)
                continue
            parsable.append(entry)
        if not parsable:
            if is_debug_enabled(logger):
                logger.debug(
                    "Package not found in registry",
                    extra=extra_context(event="registry_lookup", component="gallery",
                                        outcome="not_found", target=name),
                )
            return None

        by_version = {e["version"]: e for e in parsable}
        newest = latest(by_version)
        entry = by_version[newest]
        if is_debug_enabled(logger):
            logger.debug(
                "Registry lookup",
                extra=extra_context(event="registry_lookup", component="gallery",
                                    outcome="found", target=name, version=newest,
                                    count=len(parsable)),
            )
        return RemotePackageInfo(
            name=name,
            version=newest,
            repository=repository,
            is_prerelease=entry["is_prerelease"],
            published=entry["published"],
        )
