"""Data models for versioning."""

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class VersionToken:
    """Parsed version: dotted numeric run plus optional prerelease ordinal.

    ``prerelease`` is None for a release, which orders after every
    prerelease of the same numeric version.
    """
    numeric: Tuple[int, ...]
    prerelease: Optional[int] = None

    @property
    def is_prerelease(self) -> bool:
        """True when the version carries a prerelease suffix."""
        return self.prerelease is not None

    def sort_key(self, width: int) -> Tuple[Tuple[int, ...], int, int]:
        """Comparable key with the numeric part zero-padded to ``width``."""
        padded = self.numeric + (0,) * (width - len(self.numeric))
        if self.prerelease is None:
            return padded, 1, 0
        return padded, 0, self.prerelease

    def __str__(self) -> str:
        text = ".".join(str(n) for n in self.numeric)
        if self.prerelease is not None:
            text += f"-{self.prerelease}"
        return text
