"""
Data tables.

A data table is a chunk with access conditions and two features::

    mod_crm/@alias/dataTables/customers/
        index.py
        readNeedRole_sales.cond
        writeNeedRole_admin.cond
        autoExpose.enable        (default, materialized on first pass)
        autoProxy.disable

The generated ``dataTables/<id>.py`` exposes a
:class:`~conlink.runtime.DataTableHandle` carrying the table name, its ACL
context and an opaque ``security_uid`` derived from the registry key. Exposed
tables are registered in the server install assembly; proxied tables get a
client-side proxy registration.

Feature names:
    ===============  ==================================
    canonical        accepted spellings
    ===============  ==================================
    ``autoExpose``   autoexpose, public, expose
    ``autoProxy``    autoproxy, proxy, genproxy
    ===============  ==================================
"""

from __future__ import annotations

from collections.abc import Mapping

from conlink.aliases.chunks import TypeChunk
from conlink.core.hashing import compute_hash
from conlink.core.result import Result
from conlink.linker.conditions import need_role_normalizer
from conlink.linker.markers import Condition, MarkerRules, Policy
from conlink.linker.registry import DeclarationRecord
from conlink.linker.scanner import ScanRules
from conlink.linker.writer import CodeGenWriter, FilePart, InstallTarget, OutputTree

AUTO_EXPOSE = "autoExpose"
AUTO_PROXY = "autoProxy"

_FEATURES = {
    "autoexpose": AUTO_EXPOSE,
    "public": AUTO_EXPOSE,
    "expose": AUTO_EXPOSE,
    "autoproxy": AUTO_PROXY,
    "proxy": AUTO_PROXY,
    "genproxy": AUTO_PROXY,
}

_ACCESS_TARGETS = ("read", "write", "all")

DATA_TABLE_STUB = (
    "from conlink.runtime import DataTableHandle\n\n"
    "table: DataTableHandle\n"
    "default: DataTableHandle\n"
)


class TypeDataTables(TypeChunk):
    name = "dataTables"
    rules = ScanRules(
        markers=MarkerRules(
            priority=Policy.REQUIRED,
            reference=Policy.FORBIDDEN,
            allow_conditions=True,
            allow_features=True,
        )
    )

    def __init__(self, name: str | None = None):
        super().__init__(name)
        self._normalize = need_role_normalizer(_ACCESS_TARGETS)

    def normalize_condition(self, raw: str) -> Result[Condition]:
        return self._normalize(raw)

    def canonical_feature(self, raw: str) -> str | None:
        return _FEATURES.get(raw.lower())

    def default_features(self) -> Mapping[str, bool]:
        return {AUTO_EXPOSE: True, AUTO_PROXY: True}

    @staticmethod
    def table_name(record: DeclarationRecord) -> str:
        return record.path.name

    @staticmethod
    def security_uid(key: str) -> str:
        return compute_hash(key)

    def emit_item(self, writer: CodeGenWriter, key: str, record: DeclarationRecord) -> None:
        inner_path = self.output_path(key)
        writer.emit(
            inner_path,
            lambda tree: self.render_table(tree, inner_path, key, record),
            stub=DATA_TABLE_STUB,
        )

        item = record.payload
        name = self.table_name(record)

        if item.features.get(AUTO_EXPOSE, False):
            writer.add_install(
                InstallTarget.SERVER,
                FilePart.BODY,
                f"registry.data_tables.expose(load_entry(__file__, {inner_path!r}, 'table'))",
            )

        if item.features.get(AUTO_PROXY, False):
            writer.add_install(
                InstallTarget.CLIENT,
                FilePart.BODY,
                f"registry.data_tables.add_proxy({name!r}, {self.security_uid(key)!r})",
            )

    def render_table(self, tree: OutputTree, inner_path: str, key: str, record: DeclarationRecord) -> str:
        item = record.payload
        entry = tree.entry(record.entry_point, inner_path)
        acl = {target: tuple(roles) for target, roles in item.conditions_context.items()}
        annotation = ": DataTableHandle" if tree.annotated else ""

        return (
            "from conlink.runtime import DataTableHandle, load_entry\n"
            "\n"
            f"table{annotation} = DataTableHandle(\n"
            f"    name={self.table_name(record)!r},\n"
            f"    security_uid={self.security_uid(key)!r},\n"
            f"    provider=lambda: load_entry(__file__, {entry!r}),\n"
            f"    acl={acl!r},\n"
            f"    expose={bool(item.features.get(AUTO_EXPOSE, False))!r},\n"
            f"    proxy={bool(item.features.get(AUTO_PROXY, False))!r},\n"
            ")\n"
            "default = table\n"
        )


__all__ = ["AUTO_EXPOSE", "AUTO_PROXY", "TypeDataTables"]
