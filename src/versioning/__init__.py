"""Version model: parsing and total ordering of module versions."""

from .models import VersionToken
from .parser import compare, is_newer, latest, parse, sort_versions

__all__ = [
    "VersionToken",
    "compare",
    "is_newer",
    "latest",
    "parse",
    "sort_versions",
]
