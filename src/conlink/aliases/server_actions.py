"""
Server actions.

A server action is a chunk whose entry point exports the callable run on the
server. Access is restricted with ``allNeedRole_<role>.cond`` markers only::

    mod_crm/@alias/serverActions/sendInvoice/
        index.py
        allNeedRole_billing.cond

The generated ``serverActions/<id>.py`` exposes a
:class:`~conlink.runtime.ServerAction` with an opaque ``security_uid``
derived from the registry key. The server install assembly exposes every
action; the client install assembly registers a proxy calling it by uid.
"""

from __future__ import annotations

from conlink.aliases.chunks import TypeChunk
from conlink.core.hashing import compute_hash
from conlink.core.result import Result
from conlink.linker.conditions import need_role_normalizer
from conlink.linker.markers import Condition, MarkerRules, Policy
from conlink.linker.registry import DeclarationRecord, split_key
from conlink.linker.scanner import ScanRules
from conlink.linker.writer import CodeGenWriter, FilePart, InstallTarget, OutputTree

SERVER_ACTION_STUB = (
    "from conlink.runtime import ServerAction\n\n"
    "action: ServerAction\n"
    "default: ServerAction\n"
)


class TypeServerActions(TypeChunk):
    name = "serverActions"
    rules = ScanRules(
        markers=MarkerRules(
            priority=Policy.REQUIRED,
            reference=Policy.FORBIDDEN,
            allow_conditions=True,
            allow_features=False,
        )
    )

    def __init__(self, name: str | None = None):
        super().__init__(name)
        self._normalize = need_role_normalizer(("all",))

    def normalize_condition(self, raw: str) -> Result[Condition]:
        return self._normalize(raw)

    @staticmethod
    def security_uid(key: str) -> str:
        return compute_hash(key)

    @staticmethod
    def roles(record: DeclarationRecord) -> tuple[str, ...]:
        return tuple(record.payload.conditions_context.get("ALL", ()))

    def emit_item(self, writer: CodeGenWriter, key: str, record: DeclarationRecord) -> None:
        inner_path = self.output_path(key)
        _, _, action_name = split_key(key)

        writer.emit(
            inner_path,
            lambda tree: self.render_action(tree, inner_path, key, record),
            stub=SERVER_ACTION_STUB,
        )
        writer.add_install(
            InstallTarget.SERVER,
            FilePart.BODY,
            f"registry.server_actions.expose(load_entry(__file__, {inner_path!r}, 'action'))",
        )
        writer.add_install(
            InstallTarget.CLIENT,
            FilePart.BODY,
            f"registry.server_actions.add_proxy({action_name!r}, {self.security_uid(key)!r})",
        )

    def render_action(self, tree: OutputTree, inner_path: str, key: str, record: DeclarationRecord) -> str:
        _, _, action_name = split_key(key)
        entry = tree.entry(record.entry_point, inner_path)
        annotation = ": ServerAction" if tree.annotated else ""

        return (
            "from conlink.runtime import ServerAction, load_entry\n"
            "\n"
            f"action{annotation} = ServerAction(\n"
            f"    name={action_name!r},\n"
            f"    security_uid={self.security_uid(key)!r},\n"
            f"    action=lambda: load_entry(__file__, {entry!r}),\n"
            f"    roles={self.roles(record)!r},\n"
            ")\n"
            "default = action\n"
        )


__all__ = ["TypeServerActions"]
