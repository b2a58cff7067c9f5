"""Module catalog: the static list of modules the manager knows about.

The catalog is a YAML file, either a top-level list or a mapping with a
``modules`` list, of records with ``Module``, ``Description`` and ``Repo``
and optional ``ReplacedBy`` / ``Replaces``. It is loaded once at startup;
order is kept for display only.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Tuple

import yaml

from backend.models import url_authority
from errors import CatalogError

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "modules.yaml")

REQUIRED_FIELDS = ("Module", "Description", "Repo")
OPTIONAL_FIELDS = ("ReplacedBy", "Replaces")


@dataclass(frozen=True)
class ModuleDescriptor:
    """A known module: name, label, registry identity and replacement hints."""
    name: str
    description: str
    repository: str
    replaced_by: Optional[str] = None
    replaces: Optional[str] = None

    @property
    def authority(self) -> Optional[str]:
        """Host portion of the registry URL; installs from other hosts are a different module."""
        return url_authority(self.repository)


def _descriptor_from_record(record: Any, index: int) -> ModuleDescriptor:
    if not isinstance(record, dict):
        raise CatalogError(f"Catalog entry #{index + 1} is not a mapping")
    for key in REQUIRED_FIELDS:
        value = record.get(key)
        if not isinstance(value, str) or not value.strip():
            raise CatalogError(f"Catalog entry #{index + 1} is missing required field '{key}'")
    unknown = set(record) - set(REQUIRED_FIELDS) - set(OPTIONAL_FIELDS)
    if unknown:
        raise CatalogError(
            f"Catalog entry '{record['Module']}' has unknown field(s): {', '.join(sorted(unknown))}"
        )
    for key in OPTIONAL_FIELDS:
        value = record.get(key)
        if value is not None and not isinstance(value, str):
            raise CatalogError(f"Catalog entry '{record['Module']}' field '{key}' must be a string")

    descriptor = ModuleDescriptor(
        name=record["Module"].strip(),
        description=record["Description"].strip(),
        repository=record["Repo"].strip(),
        replaced_by=(record.get("ReplacedBy") or "").strip() or None,
        replaces=(record.get("Replaces") or "").strip() or None,
    )
    if descriptor.authority is None:
        raise CatalogError(f"Catalog entry '{descriptor.name}' has an invalid Repo URL: {descriptor.repository}")
    return descriptor


def parse_catalog(data: Any) -> Tuple[ModuleDescriptor, ...]:
    """Validate loaded catalog data and build descriptors.

    Raises:
        CatalogError: On schema violations or duplicate module names.
    """
    if isinstance(data, dict):
        data = data.get("modules")
    if not isinstance(data, list):
        raise CatalogError("Catalog must be a list of modules or a mapping with a 'modules' list")

    seen = set()
    descriptors = []
    for index, record in enumerate(data):
        descriptor = _descriptor_from_record(record, index)
        key = descriptor.name.lower()
        if key in seen:
            raise CatalogError(f"Duplicate module in catalog: {descriptor.name}")
        seen.add(key)
        descriptors.append(descriptor)
    return tuple(descriptors)


def load_catalog(path: Optional[str] = None) -> Tuple[ModuleDescriptor, ...]:
    """Load and validate the catalog file; the packaged catalog when ``path`` is None.

    Raises:
        CatalogError: The file cannot be read or fails validation.
    """
    path = path or DEFAULT_CATALOG_PATH
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except FileNotFoundError as exc:
        raise CatalogError(f"Catalog file not found: {path}") from exc
    except (OSError, yaml.YAMLError) as exc:
        raise CatalogError(f"Catalog file could not be read: {exc}") from exc

    descriptors = parse_catalog(data)
    logger.debug("Loaded %d module(s) from catalog %s", len(descriptors), path)
    return descriptors


def find_descriptor(catalog: Iterable[ModuleDescriptor], name: str) -> Optional[ModuleDescriptor]:
    """Case-insensitive lookup of a descriptor by module name."""
    wanted = name.lower()
    for descriptor in catalog:
        if descriptor.name.lower() == wanted:
            return descriptor
    return None


__all__ = [
    "DEFAULT_CATALOG_PATH",
    "ModuleDescriptor",
    "find_descriptor",
    "load_catalog",
    "parse_catalog",
]
