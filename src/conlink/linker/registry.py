"""
Declaration registry for one compile pass.

Every category records what it discovered under a *composite key*:

    ``<category>!<name>``            single declarations (``dataTables!users``)
    ``<category>:<group>!<name>``    grouped declarations (``events:app.ready!notify``)

Exactly one record wins per key. Conflicts are arbitrated by priority tier:

    ===================  ==============================================
    incoming vs current  outcome
    ===================  ==============================================
    strictly higher      incoming replaces current
    lower                incoming discarded (``registry_item_ignored``)
    equal                first writer kept (``registry_item_ignored``),
                         or LinkerError when ``strict_conflicts``
    ===================  ==============================================

The registry is written during discovery and read during emission. The
orchestrator freezes it in between so a late ``add`` fails loudly.

Examples:
    >>> registry = Registry()
    >>> registry.add("chunks!logo", DeclarationRecord("chunks", Path("a"), PriorityLevel.LOW))
    True
    >>> registry.add("chunks!logo", DeclarationRecord("chunks", Path("b"), PriorityLevel.HIGH))
    True
    >>> registry.require("chunks!logo").unwrap().path
    PosixPath('b')

Tags:
    registry, priority, conflicts, conlink

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from conlink.core.errors import LinkerError, ReferenceTargetError, StructureError, TypeMismatchError
from conlink.core.logging import get_logger
from conlink.core.result import Err, Ok, Result
from conlink.linker.priority import PriorityLevel

logger = get_logger(__name__)


def make_key(category: str, name: str, group: str | None = None) -> str:
    """
    Build a composite key.

    >>> make_key("events", "notify", group="app.ready")
    'events:app.ready!notify'
    """
    if group is None:
        return f"{category}!{name}"
    return f"{category}:{group}!{name}"


def split_key(key: str) -> tuple[str, str | None, str]:
    """
    Inverse of :func:`make_key`: ``(category, group, name)``.

    >>> split_key("events:app.ready!notify")
    ('events', 'app.ready', 'notify')
    """
    head, _, name = key.partition("!")
    category, _, group = head.partition(":")
    return category, group or None, name


@dataclass(frozen=True)
class DeclarationRecord:
    """
    One declaration discovered in the source tree.

    Attributes:
        category: Owning alias type name
        path: Absolute path of the item folder (or file)
        priority: Tier used for conflict arbitration
        entry_point: File the generated code forwards to, if any
        payload: Category-specific data
        module: Name of the contributing module
    """

    category: str
    path: Path
    priority: PriorityLevel = PriorityLevel.DEFAULT
    entry_point: Path | None = None
    payload: Any = None
    module: str | None = None


class Registry:
    """Composite key -> winning :class:`DeclarationRecord`."""

    def __init__(self, strict_conflicts: bool = False):
        self.strict_conflicts = strict_conflicts
        self._records: dict[str, DeclarationRecord] = {}
        self._frozen = False

    def add(self, key: str, record: DeclarationRecord) -> bool:
        """
        Register ``record`` under ``key``.

        Returns:
            True when the record is now the winner for ``key``.

        Raises:
            StructureError: Equal-tier collision with ``strict_conflicts``.
        """
        if self._frozen:
            raise LinkerError(f"Registry is read-only during emission (add {key})", path=str(record.path))

        current = self._records.get(key)

        if current is None:
            self._records[key] = record
            logger.debug("registry_item_added", key=key, priority=record.priority.canonical_name)
            return True

        if record.priority > current.priority:
            self._records[key] = record
            logger.info(
                "registry_item_replaced",
                key=key,
                winner=str(record.path),
                loser=str(current.path),
            )
            return True

        if record.priority == current.priority and self.strict_conflicts:
            raise StructureError(
                f"Two items share the key {key} with the same priority "
                f"({record.priority.canonical_name}), the other one is {current.path}",
                path=str(record.path),
            ).with_context(key=key)

        logger.info(
            "registry_item_ignored",
            key=key,
            path=str(record.path),
            kept=str(current.path),
            reason="same_priority" if record.priority == current.priority else "lower_priority",
        )
        return False

    def get(self, key: str, expected_category: str | None = None) -> Result[DeclarationRecord | None]:
        """Winning record for ``key`` or ``Ok(None)``. Category mismatch is an ``Err``."""
        record = self._records.get(key)

        if record is not None and expected_category is not None and record.category != expected_category:
            return Err(TypeMismatchError(key, expected_category, record.category, path=str(record.path)))

        return Ok(record)

    def require(self, key: str, expected_category: str | None = None) -> Result[DeclarationRecord]:
        """As :meth:`get`, but a missing key is an ``Err(ReferenceTargetError)``."""
        result = self.get(key, expected_category)
        if result.is_ok() and result.unwrap() is None:
            return Err(ReferenceTargetError(f"The item {key} doesn't exist").with_context(key=key))
        return result

    def resolve_entry_point(self, key: str, expected_category: str | None = None) -> Result[Path]:
        """
        Follow ``key`` (and the references it makes) to a concrete entry point.

        A record whose payload has a ``ref_target`` attribute forwards to it.
        """
        seen: set[str] = set()
        current_key = key

        while True:
            if current_key in seen:
                return Err(
                    ReferenceTargetError(f"Reference cycle through {current_key}").with_context(key=key)
                )
            seen.add(current_key)

            result = self.require(current_key, expected_category)
            if result.is_err():
                return result

            record = result.unwrap()
            if record.entry_point is not None:
                return Ok(record.entry_point)

            next_key = getattr(record.payload, "ref_target", None)
            if next_key is None:
                return Err(
                    ReferenceTargetError(f"The item {current_key} has no entry point", path=str(record.path))
                )
            current_key = next_key

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def items(self, category: str | None = None) -> list[tuple[str, DeclarationRecord]]:
        """``(key, record)`` pairs sorted by key, optionally for one category."""
        return sorted(
            (k, r) for k, r in self._records.items() if category is None or r.category == category
        )

    def __contains__(self, key: str) -> bool:
        return key in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._records))


__all__ = ["make_key", "split_key", "DeclarationRecord", "Registry"]
