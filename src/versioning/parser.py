"""Version parsing and ordering.

Versions are ``<dotted integers>[-<letters><digits>...]``. The numeric run
is compared component-wise as integers; the suffix has its leading letters
stripped and the following digit run becomes the prerelease ordinal. A
version without a suffix outranks every prerelease of the same numeric run,
so ``1.2.0 > 1.2.0-preview3 > 1.2.0-preview1``.
"""

import re
from typing import Iterable, List, Optional, Union

from errors import ParseError
from .models import VersionToken

_NUMERIC_RE = re.compile(r"^\d+(\.\d+)*$")
_PRERELEASE_RE = re.compile(r"^[A-Za-z]*(\d*)")

VersionLike = Union[str, VersionToken]


def parse(text: str) -> VersionToken:
    """Parse a raw version string into a VersionToken.

    Raises:
        ParseError: When the dotted numeric run is missing or malformed.
    """
    if text is None:
        raise ParseError("Version is missing")
    raw = str(text).strip()
    numeric_part, sep, suffix = raw.partition("-")
    if not _NUMERIC_RE.match(numeric_part):
        raise ParseError(f"Unparsable version: {text!r}")
    numeric = tuple(int(piece) for piece in numeric_part.split("."))

    if not sep:
        return VersionToken(numeric=numeric)
    # Letters-only or empty suffixes ("-preview", "-") rank as ordinal 0.
    digits = _PRERELEASE_RE.match(suffix).group(1)
    return VersionToken(numeric=numeric, prerelease=int(digits) if digits else 0)


def _coerce(value: VersionLike) -> VersionToken:
    return value if isinstance(value, VersionToken) else parse(value)


def compare(a: VersionLike, b: VersionLike) -> int:
    """Compare two versions.

    Returns:
        1 if ``b`` is newer, -1 if ``a`` is newer, 0 if they are equal.

    Raises:
        ParseError: If either side cannot be parsed.
    """
    ta, tb = _coerce(a), _coerce(b)
    width = max(len(ta.numeric), len(tb.numeric))
    ka, kb = ta.sort_key(width), tb.sort_key(width)
    if kb > ka:
        return 1
    if ka > kb:
        return -1
    return 0


def is_newer(candidate: VersionLike, baseline: VersionLike) -> bool:
    """True when ``candidate`` is strictly newer than ``baseline``."""
    return compare(baseline, candidate) == 1


def sort_versions(values: Iterable[VersionLike], descending: bool = True) -> List[VersionLike]:
    """Sort versions by the version model, newest first by default."""
    items = list(values)
    tokens = [_coerce(v) for v in items]
    width = max((len(t.numeric) for t in tokens), default=0)
    order = sorted(range(len(items)), key=lambda i: tokens[i].sort_key(width), reverse=descending)
    return [items[i] for i in order]


def latest(values: Iterable[VersionLike]) -> Optional[VersionLike]:
    """Return the newest version, or None for an empty input."""
    ordered = sort_versions(values)
    return ordered[0] if ordered else None
