"""
Keyed providers.

A provider folder is a chunk whose entry point exports the provider
definition; the generated module wraps it under the item identity::

    mod_shop/@alias/dataProviders/products/index.py
        ─►  .codegen/dataProviders/products.py
            provider = DataProvider('products', load_entry(__file__, '...'))

``dataProviders`` wrap a value function; ``objectProviders`` wrap an object
exposing ``get_value`` and optional cache hooks (see
:class:`~conlink.runtime.ObjectProvider`).
"""

from __future__ import annotations

from conlink.aliases.chunks import TypeChunk
from conlink.linker.registry import DeclarationRecord, split_key
from conlink.linker.writer import CodeGenWriter, OutputTree


class TypeDataProvider(TypeChunk):
    name = "dataProviders"
    runtime_class = "DataProvider"

    def stub(self) -> str:
        return (
            f"from conlink.runtime import {self.runtime_class}\n\n"
            f"provider: {self.runtime_class}\n"
            f"default: {self.runtime_class}\n"
        )

    def emit_item(self, writer: CodeGenWriter, key: str, record: DeclarationRecord) -> None:
        inner_path = self.output_path(key)
        writer.emit(
            inner_path,
            lambda tree: self.render_provider(tree, inner_path, key, record),
            stub=self.stub(),
        )

    def render_provider(self, tree: OutputTree, inner_path: str, key: str, record: DeclarationRecord) -> str:
        _, _, provider_key = split_key(key)
        entry = tree.entry(record.entry_point, inner_path)
        annotation = f": {self.runtime_class}" if tree.annotated else ""

        return (
            f"from conlink.runtime import {self.runtime_class}, load_entry\n"
            "\n"
            f"provider{annotation} = {self.runtime_class}({provider_key!r}, load_entry(__file__, {entry!r}))\n"
            "default = provider\n"
        )


class TypeObjectProvider(TypeDataProvider):
    name = "objectProviders"
    runtime_class = "ObjectProvider"


__all__ = ["TypeDataProvider", "TypeObjectProvider"]
