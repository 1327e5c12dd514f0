"""
Ordered multi-contributor lists.

Layout::

    mod_a/@alias/lists/menu.main/
        home/index.py          default tier
        admin/
            index.py
            high.priority
    mod_b/@alias/lists/menu.main/
        help/
            chunks!help.ref    member forwarding to another registry key

Every member folder is one registry record keyed
``<type>:<group>!<identity>`` (the ``.myuid`` uid when present, else the
folder name), so the same member contributed by two modules is arbitrated
by priority like any other key. At emission the surviving
members of a group are ordered tier-major (``very_high`` first), then by
member name, and written as one module exposing ``items``.

Examples:
    >>> order_members([m("b", LOW), m("a", VERY_HIGH), m("c", DEFAULT), m("d", VERY_HIGH)])
    ['a', 'd', 'c', 'b']
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from conlink.linker.alias_type import AliasType, DiscoverContext
from conlink.linker.fs import list_entries
from conlink.linker.markers import MarkerRules, Policy
from conlink.linker.priority import PriorityLevel
from conlink.linker.registry import DeclarationRecord, make_key, split_key
from conlink.linker.scanner import ScanRules
from conlink.linker.writer import CodeGenWriter, OutputTree

LIST_RULES = ScanRules(
    markers=MarkerRules(
        priority=Policy.OPTIONAL,
        reference=Policy.OPTIONAL,
        allow_conditions=False,
        allow_features=False,
    )
)


@dataclass(frozen=True)
class ListMember:
    """One contribution to a list group."""

    group: str
    name: str
    path: Path
    priority: PriorityLevel = PriorityLevel.DEFAULT
    entry_point: Path | None = None
    ref_target: str | None = None

    @property
    def sort_key(self) -> tuple[int, str]:
        return (-int(self.priority), self.name)


@dataclass
class ListGroup:
    name: str
    members: list[ListMember] = field(default_factory=list)

    def ordered(self) -> list[ListMember]:
        return order_members(self.members)


def order_members(members: Iterable[ListMember]) -> list[ListMember]:
    """Tier-major (``very_high`` first), then lexicographic by member name."""
    return sorted(members, key=lambda m: m.sort_key)


class TypeList(AliasType):
    """
    Generic list category.

    Args:
        name: Type folder name
        ref_category: When set, ``.ref`` members must point at records of
            this category
    """

    name = "lists"
    rules = LIST_RULES

    def __init__(self, name: str | None = None, ref_category: str | None = None):
        super().__init__(name)
        self.ref_category = ref_category
        self._groups: dict[str, ListGroup] = {}

    def reset(self) -> None:
        self._groups = {}

    # ── Discovery ────────────────────────────────────────────────

    def discover(self, ctx: DiscoverContext, type_dir: Path) -> None:
        hooks = self.marker_hooks()

        for group_dir in list_entries(type_dir):
            if not group_dir.is_dir or group_dir.name.startswith((".", "_")):
                continue

            for item in ctx.scanner.scan(group_dir.path, self.rules, hooks):
                member = ListMember(
                    group=group_dir.name,
                    name=item.name,
                    path=item.path,
                    priority=item.priority,
                    entry_point=item.entry_point,
                    ref_target=item.ref_target,
                )
                ctx.add(
                    make_key(self.name, item.identity, group=member.group),
                    DeclarationRecord(
                        category=self.name,
                        path=item.path,
                        priority=item.priority,
                        entry_point=item.entry_point,
                        payload=member,
                        module=ctx.module_name,
                    ),
                )

    def shadow_lists(self) -> Iterable[str]:
        """Group names that exist even without any member folder."""
        return ()

    # ── Emission ─────────────────────────────────────────────────

    def begin_emission(self, writer: CodeGenWriter) -> None:
        self._groups = {name: ListGroup(name) for name in self.shadow_lists()}

    def emit_item(self, writer: CodeGenWriter, key: str, record: DeclarationRecord) -> None:
        member: ListMember = record.payload

        if member.entry_point is None:
            result = writer.registry.resolve_entry_point(member.ref_target, self.ref_category)
            if result.is_err():
                raise result.error.with_context(path=str(record.path))
            member = ListMember(
                group=member.group,
                name=member.name,
                path=member.path,
                priority=member.priority,
                entry_point=result.unwrap(),
                ref_target=member.ref_target,
            )

        _, group, _ = split_key(key)
        self._groups.setdefault(group, ListGroup(group)).members.append(member)

    def end_emission(self, writer: CodeGenWriter, records: list[tuple[str, DeclarationRecord]]) -> None:
        for name in sorted(self._groups):
            group = self._groups[name]
            inner_path = self.output_path(name)
            members = group.ordered()
            writer.emit(
                inner_path,
                lambda tree: self.render(tree, inner_path, group, members),
                stub=self.stub(group),
            )
            self.on_group_emitted(writer, group, inner_path)

    def output_path(self, group: str) -> str:
        return f"{self.name}/{group}.py"

    def on_group_emitted(self, writer: CodeGenWriter, group: ListGroup, inner_path: str) -> None:
        pass

    # ── Rendering ────────────────────────────────────────────────

    def imports(self, tree: OutputTree) -> list[str]:
        lines = ["from conlink.runtime import load_entry"]
        if tree.annotated:
            lines.insert(0, "from typing import Any\n")
        return lines

    def render(self, tree: OutputTree, inner_path: str, group: ListGroup, members: list[ListMember]) -> str:
        lines = self.imports(tree)
        lines.append("")

        names = []
        for i, member in enumerate(members, start=1):
            entry = tree.entry(member.entry_point, inner_path)
            lines.append(f"I{i} = load_entry(__file__, {entry!r})")
            names.append(f"I{i}")

        if members:
            lines.append("")

        annotation = ": list[Any]" if tree.annotated else ""
        lines.append(f"items{annotation} = [{', '.join(names)}]")
        lines.extend(self.exports(tree, group))
        return "\n".join(lines) + "\n"

    def exports(self, tree: OutputTree, group: ListGroup) -> list[str]:
        return []

    def stub(self, group: ListGroup) -> str:
        return "from typing import Any\n\nitems: list[Any]\n"


__all__ = ["LIST_RULES", "ListMember", "ListGroup", "order_members", "TypeList"]
