"""Priority tiers used to arbitrate between contributing modules."""

from __future__ import annotations

from enum import IntEnum


class PriorityLevel(IntEnum):
    """Five ordered tiers. A numerically higher tier wins a key conflict."""

    VERY_LOW = -200
    LOW = -100
    DEFAULT = 0
    HIGH = 100
    VERY_HIGH = 200

    @property
    def canonical_name(self) -> str:
        """Spelling used for ``<name>.priority`` marker files."""
        return self.name.lower()

    @classmethod
    def descending(cls) -> list["PriorityLevel"]:
        """Tiers from ``VERY_HIGH`` down to ``VERY_LOW``."""
        return sorted(cls, reverse=True)


def priority_from_name(name: str) -> PriorityLevel | None:
    """
    Map a case/separator-insensitive tier name to a level.

    >>> priority_from_name("Very-High")
    <PriorityLevel.VERY_HIGH: 200>
    >>> priority_from_name("urgent") is None
    True
    """
    normalized = name.lower().replace("-", "").replace("_", "")
    return _BY_COMPACT_NAME.get(normalized)


_BY_COMPACT_NAME = {level.name.lower().replace("_", ""): level for level in PriorityLevel}
