"""Per-module init hooks wired into the install assemblies."""

from __future__ import annotations

from pathlib import Path

from conlink.linker.alias_type import DiscoverContext, ModuleProcessor
from conlink.linker.fs import resolve_file
from conlink.linker.writer import CodeGenWriter, FilePart, InstallTarget, OutputTree

SERVER_INIT_FILES = ("server_init.py",)
UI_INIT_FILES = ("ui_init.py",)
INIT_FUNCTION = "init"


class ModInstaller(ModuleProcessor):
    """
    Collects ``server_init.py`` / ``ui_init.py`` at module roots.

    Each file must define ``init(registry)`` (a coroutine for the server).
    Server inits are awaited in module order inside ``install``; client inits
    run in the footer, followed by ``registry.finalize()``.
    """

    name = "modInstaller"

    def __init__(self):
        self.server_inits: list[Path] = []
        self.ui_inits: list[Path] = []

    def reset(self) -> None:
        self.server_inits = []
        self.ui_inits = []

    def on_begin_module(self, ctx: DiscoverContext) -> None:
        server_init = resolve_file(ctx.module_dir, SERVER_INIT_FILES)
        if server_init is not None:
            self.server_inits.append(server_init)

        ui_init = resolve_file(ctx.module_dir, UI_INIT_FILES)
        if ui_init is not None:
            self.ui_inits.append(ui_init)

    def emit(self, writer: CodeGenWriter) -> None:
        for i, path in enumerate(self.server_inits, start=1):
            writer.add_install(InstallTarget.SERVER, FilePart.HEADER, _loader(f"modServerInit{i}", path, "install_server.py"))
            writer.add_install(InstallTarget.SERVER, FilePart.BODY, f"await modServerInit{i}(registry)")

        for i, path in enumerate(self.ui_inits, start=1):
            writer.add_install(InstallTarget.CLIENT, FilePart.HEADER, _loader(f"modUiInit{i}", path, "install_client.py"))
            writer.add_install(InstallTarget.CLIENT, FilePart.FOOTER, f"modUiInit{i}(registry)")

        writer.add_install(InstallTarget.CLIENT, FilePart.FOOTER, "registry.finalize()")


def _loader(variable: str, path: Path, inner_path: str):
    def render(tree: OutputTree) -> str:
        return f"{variable} = load_entry(__file__, {tree.entry(path, inner_path)!r}, {INIT_FUNCTION!r})"

    return render


__all__ = ["ModInstaller", "SERVER_INIT_FILES", "UI_INIT_FILES"]
