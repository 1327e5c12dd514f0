"""
Single-item categories.

A *chunk* is a folder with an entry point; the generated module simply
forwards to it::

    mod_core/@alias/chunks/logo/index.py   ─►  .codegen/chunks/logo.py
        default = load_entry(__file__, "../../mod_core/@alias/chunks/logo/index.py")

Several modules may provide the same chunk; the priority tier decides which
one is linked. A missing ``.priority`` is materialized as ``default.priority``.

Variants add one grouping level (``@alias/variants/<kind>/<item>``) and are
keyed ``variants:<kind>!<identity>``.
"""

from __future__ import annotations

from pathlib import Path

from conlink.linker.alias_type import AliasType, DiscoverContext
from conlink.linker.fs import list_entries
from conlink.linker.markers import MarkerRules, Policy
from conlink.linker.registry import DeclarationRecord, make_key, split_key
from conlink.linker.scanner import ItemDescriptor, ScanRules
from conlink.linker.writer import CodeGenWriter, OutputTree

CHUNK_RULES = ScanRules(
    markers=MarkerRules(
        priority=Policy.REQUIRED,
        reference=Policy.FORBIDDEN,
        allow_conditions=False,
        allow_features=False,
    )
)

CHUNK_STUB = "from typing import Any\n\ndefault: Any\n"


class TypeChunk(AliasType):
    name = "chunks"
    rules = CHUNK_RULES

    def __init__(self, name: str | None = None, ui: bool = False):
        super().__init__(name)
        self.ui = ui

    def output_path(self, key: str) -> str:
        _, group, name = split_key(key)
        if group is None:
            return f"{self.name}/{name}.py"
        return f"{self.name}/{group}/{name}.py"

    def emit_item(self, writer: CodeGenWriter, key: str, record: DeclarationRecord) -> None:
        inner_path = self.output_path(key)
        writer.emit(
            inner_path,
            lambda tree: self.render(tree, inner_path, record),
            stub=CHUNK_STUB,
        )

    def render(self, tree: OutputTree, inner_path: str, record: DeclarationRecord) -> str:
        entry = tree.entry(record.entry_point, inner_path)

        if tree.annotated:
            return (
                "from typing import Any\n\n"
                "from conlink.runtime import load_entry\n\n"
                f"default: Any = load_entry(__file__, {entry!r})\n"
            )
        return f"from conlink.runtime import load_entry\n\ndefault = load_entry(__file__, {entry!r})\n"


class TypeVariants(TypeChunk):
    """Chunks grouped by kind: ``@alias/variants/<kind>/<item>``."""

    name = "variants"

    def discover(self, ctx: DiscoverContext, type_dir: Path) -> None:
        hooks = self.marker_hooks()

        for kind in list_entries(type_dir):
            if not kind.is_dir or kind.name.startswith((".", "_")):
                continue
            for item in ctx.scanner.scan(kind.path, self.rules, hooks):
                self.on_variant(ctx, kind.name, item)

    def on_variant(self, ctx: DiscoverContext, kind: str, item: ItemDescriptor) -> None:
        ctx.add(
            make_key(self.name, item.identity, group=kind),
            DeclarationRecord(
                category=self.name,
                path=item.path,
                priority=item.priority,
                entry_point=item.entry_point,
                payload=item,
                module=ctx.module_name,
            ),
        )


__all__ = ["CHUNK_RULES", "TypeChunk", "TypeVariants"]
