"""
Directory scanner.

Walks one category folder and turns every item folder into an immutable
:class:`ItemDescriptor`. The scanner owns all the structural rules that are
common to categories:

- children starting with ``.`` or ``_`` are skipped, except a directory named
  exactly ``_`` which is renamed to a fresh uid first
- the item name constraint (must / may / must-not be a uid)
- entry point resolution (``index.py`` then ``__init__.py`` by default)
- marker extraction and canonicalization (via the pure grammar)

Every violation raises a :class:`~conlink.core.errors.LinkerError` naming the
offending path. Categories never see a malformed item.

Examples:
    >>> scanner = Scanner()
    >>> items = scanner.scan(Path("src/mod_core/@alias/events/app.ready"), ScanRules())
    >>> [item.name for item in items]
    ['notify', 'warm_cache']

Tags:
    scanner, filesystem, discovery, conlink

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType

from conlink.core.errors import StructureError
from conlink.core.logging import get_logger
from conlink.linker.fs import apply_fixes, list_entries, rename_directory, resolve_file
from conlink.linker.markers import (
    MarkerHooks,
    MarkerRules,
    MarkerScan,
    extract_marker_info,
    is_uid,
    new_uid,
)
from conlink.linker.priority import PriorityLevel

logger = get_logger(__name__)

ENTRY_POINTS = ("index.py", "__init__.py")


class NameConstraint(str, Enum):
    CAN_BE_UID = "can_be_uid"
    MUST_BE_UID = "must_be_uid"
    MUST_NOT_BE_UID = "must_not_be_uid"


@dataclass(frozen=True)
class ScanRules:
    """
    Structural rules of one category.

    Attributes:
        markers: Which marker kinds are allowed/required
        files_to_find: Entry point candidates, first match wins
        require_entry_point: An item without entry point (and without
            ``.ref``) is an error; otherwise it is silently skipped
        name_constraint: Whether item names must/may/must-not be uids
    """

    markers: MarkerRules = field(default_factory=MarkerRules)
    files_to_find: tuple[str, ...] = ENTRY_POINTS
    require_entry_point: bool = True
    name_constraint: NameConstraint = NameConstraint.CAN_BE_UID


@dataclass(frozen=True)
class ItemDescriptor:
    """Normalized description of one accepted item folder."""

    name: str
    path: Path
    priority: PriorityLevel = PriorityLevel.DEFAULT
    uid: str | None = None
    ref_target: str | None = None
    entry_point: Path | None = None
    conditions: frozenset[str] = frozenset()
    conditions_context: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    features: Mapping[str, bool] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def identity(self) -> str:
        """Registry identity: the uid when present, else the folder name."""
        return self.uid or self.name


class Scanner:
    """
    Scans category folders into item descriptors.

    ``uid_factory`` is injectable so tests can produce predictable uids.
    """

    def __init__(self, uid_factory: Callable[[], str] = new_uid):
        self.uid_factory = uid_factory
        self.fixes_applied = 0

    def scan(
        self,
        root: Path,
        rules: ScanRules,
        hooks: MarkerHooks | None = None,
    ) -> list[ItemDescriptor]:
        """Scan every item folder directly below ``root``, in name order."""
        items: list[ItemDescriptor] = []

        for entry in list_entries(root):
            if not entry.is_dir or entry.is_symlink:
                continue

            path = entry.path
            if entry.name == "_":
                path = rename_directory(path, self.uid_factory())
            elif entry.name.startswith((".", "_")):
                continue

            item = self.scan_item(path, rules, hooks)
            if item is not None:
                items.append(item)

        return items

    def read_markers(
        self,
        path: Path,
        markers: MarkerRules,
        hooks: MarkerHooks | None = None,
    ) -> MarkerScan:
        """
        Decode the markers of one folder and canonicalize them on disk.

        Default feature markers are not materialized here; see ``scan_item``.
        """
        entries = [e.as_marker_entry() for e in list_entries(path)]
        scan = extract_marker_info(path, entries, markers, hooks, self.uid_factory).unwrap()
        uid = scan.info.uid

        if uid and is_uid(path.name) and uid != path.name:
            raise StructureError(
                f"The .myuid file ({uid}) doesn't match the folder uid ({path.name})",
                path=str(path),
            )

        self.fixes_applied += apply_fixes(scan.fixes)
        return scan

    def scan_item(
        self,
        path: Path,
        rules: ScanRules,
        hooks: MarkerHooks | None = None,
    ) -> ItemDescriptor | None:
        """
        Scan one item folder.

        Returns:
            The descriptor, or None when the folder has no entry point and the
            category does not require one.

        Raises:
            LinkerError: On any grammar or structure violation.
        """
        name = path.name
        name_is_uid = is_uid(name)

        if rules.name_constraint is NameConstraint.MUST_BE_UID and not name_is_uid:
            raise StructureError(f"The item name must be a uid (use '_' to create one): {name}", path=str(path))
        if rules.name_constraint is NameConstraint.MUST_NOT_BE_UID and name_is_uid:
            raise StructureError(f"The item name can't be a uid: {name}", path=str(path))

        scan = self.read_markers(path, rules.markers, hooks)
        info = scan.info

        entry_point = resolve_file(path, rules.files_to_find)

        if entry_point is not None and info.ref_target is not None:
            raise StructureError("An item can't have both an entry point and a .ref file", path=str(path))

        if entry_point is None and info.ref_target is None:
            if rules.require_entry_point:
                expected = " or ".join(rules.files_to_find)
                raise StructureError(f"No entry point found, expected {expected}", path=str(path))
            logger.debug("item_skipped", path=str(path), reason="no_entry_point")
            return None

        self.fixes_applied += apply_fixes(scan.feature_fixes)

        uid = info.uid or (name if name_is_uid else None)

        return ItemDescriptor(
            name=name,
            path=path,
            priority=info.priority if info.priority is not None else PriorityLevel.DEFAULT,
            uid=uid,
            ref_target=info.ref_target,
            entry_point=entry_point,
            conditions=info.conditions,
            conditions_context=info.conditions_context,
            features=info.features,
        )


__all__ = [
    "ENTRY_POINTS",
    "NameConstraint",
    "ScanRules",
    "ItemDescriptor",
    "Scanner",
]
