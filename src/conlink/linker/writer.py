"""
Code-gen writer.

Collects every generated module of a pass **in memory** and commits them in
one step once discovery and emission both succeeded. A failing pass therefore
leaves the previous output untouched.

Two output trees are produced from each module:

    ===========  ============================  ==================================
    tree         location                      entry points referenced as
    ===========  ============================  ==================================
    source (A)   ``<root>/src/.codegen/``      ``*.py`` below ``src/``
    runtime (B)  ``<root>/dist/.codegen/``     ``*<dist_suffix>`` below ``dist/``
    ===========  ============================  ==================================

Manifesto:
    - **Write only on change:** a byte-identical file is never rewritten, so a
      second pass on unchanged input touches nothing
    - **Relative references:** generated code locates entry points relative
      to its own ``__file__`` so a project can move without regenerating
    - **Install assembly:** categories contribute header/body/footer fragments
      per deployment target, rendered into fixed templates at the end

Examples:
    >>> writer = CodeGenWriter(LinkerSettings(project_root=root))
    >>> writer.emit("chunks/logo.py", lambda tree: f"default = load_entry(__file__, {tree.entry(p, 'chunks/logo.py')!r})")
    >>> writer.add_install(InstallTarget.CLIENT, FilePart.FOOTER, "registry.finalize()")
    >>> writer.finalize()
    >>> written = writer.commit()

Tags:
    codegen, writer, idempotency, install, conlink

Doc-Types:
    - API Reference
    - Architecture Documentation
"""

from __future__ import annotations

import json
import os
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from string import Template
from typing import TYPE_CHECKING

from conlink.core.errors import LinkerError, LinkerIOError
from conlink.core.logging import get_logger
from conlink.core.settings import LinkerSettings
from conlink.linker.fs import write_text_if_mismatch

if TYPE_CHECKING:
    from conlink.linker.registry import Registry

logger = get_logger(__name__)

BANNER = "# Generated by conlink. Do not modify: this file is rewritten on every pass.\n"
LAST_RUN_FILE = ".last_run"
LAST_PROOF_FILE = ".last_proof"
UI_MANIFEST = "ui_files.json"
INSTALL_FILES = {"server": "install_server.py", "client": "install_client.py"}

_KEEP = {LAST_RUN_FILE, LAST_PROOF_FILE}
_INDENT = "    "


class TreeKind(str, Enum):
    SOURCE = "src"
    RUNTIME = "dist"


class InstallTarget(str, Enum):
    SERVER = "server"
    CLIENT = "client"
    BOTH = "both"


class FilePart(str, Enum):
    HEADER = "header"
    BODY = "body"
    FOOTER = "footer"


@dataclass(frozen=True)
class OutputTree:
    """
    One output tree and how it references project files.

    ``mirror_root`` is the tree holding the referenced entry points: ``src/``
    for the source tree, ``dist/`` for the runtime tree.
    """

    kind: TreeKind
    root: Path
    src_root: Path
    mirror_root: Path
    suffix: str = ".py"

    @property
    def annotated(self) -> bool:
        """Source tree modules carry type annotations."""
        return self.kind is TreeKind.SOURCE

    def entry(self, entry_point: Path, inner_path: str) -> str:
        """Path of ``entry_point`` relative to the generated module ``inner_path``."""
        try:
            relative = entry_point.relative_to(self.src_root)
        except ValueError as e:
            raise LinkerError(
                f"Entry point is outside the source directory {self.src_root}",
                path=str(entry_point),
            ) from e

        target = self.mirror_root / relative
        if self.kind is TreeKind.RUNTIME and target.suffix == ".py":
            target = target.with_suffix(self.suffix)

        return self._relative(target, inner_path)

    def generated(self, target_inner_path: str, inner_path: str) -> str:
        """Path of another generated module relative to ``inner_path``."""
        return self._relative(self.root / target_inner_path, inner_path)

    def _relative(self, target: Path, inner_path: str) -> str:
        anchor = (self.root / inner_path).parent
        return Path(os.path.relpath(target, anchor)).as_posix()


Render = Callable[[OutputTree], str]
Fragment = str | Render


_SERVER_TEMPLATE = Template(
    """${banner}
from conlink.runtime import load_entry
${header}

async def install(registry, on_site_created=None):
${body}${footer}    return None
"""
)

_CLIENT_TEMPLATE = Template(
    """${banner}
from conlink.runtime import load_entry
${header}

def install(registry):
${body}${footer}    return None
"""
)

_TEMPLATES = {InstallTarget.SERVER: _SERVER_TEMPLATE, InstallTarget.CLIENT: _CLIENT_TEMPLATE}


def _indent(text: str) -> str:
    return "".join(f"{_INDENT}{line}\n" if line.strip() else "\n" for line in text.splitlines())


class CodeGenWriter:
    """
    Stages generated modules and install fragments for one pass.

    ``registry`` is the frozen registry of the pass, available to categories
    that resolve references while emitting.
    """

    def __init__(self, settings: LinkerSettings, registry: Registry | None = None):
        self.settings = settings
        self.registry = registry
        self.source_tree = OutputTree(
            kind=TreeKind.SOURCE,
            root=settings.output_src,
            src_root=settings.src_root,
            mirror_root=settings.src_root,
        )
        self.runtime_tree = OutputTree(
            kind=TreeKind.RUNTIME,
            root=settings.output_dist,
            src_root=settings.src_root,
            mirror_root=settings.dist_root,
            suffix=settings.dist_suffix,
        )

        self._staged: dict[Path, str] = {}
        self._install: dict[tuple[InstallTarget, FilePart], list[Fragment]] = {}
        self._ui_files: list[Path] = []
        self._finalized = False

        self.written: list[Path] = []
        self.pruned: list[Path] = []

    @property
    def trees(self) -> tuple[OutputTree, OutputTree]:
        return self.source_tree, self.runtime_tree

    @property
    def staged(self) -> dict[Path, str]:
        """Absolute path -> content of everything the pass will write."""
        return dict(self._staged)

    # ── Staging ──────────────────────────────────────────────────

    def write_module(
        self,
        inner_path: str,
        content_a: str,
        content_b: str | None = None,
        stub: str | None = None,
    ) -> None:
        """
        Stage a generated module.

        Args:
            inner_path: Posix path relative to the output trees
            content_a: Source tree content
            content_b: Runtime tree content (omitted from the runtime tree if None)
            stub: ``.pyi`` declaration stub placed next to the runtime module
        """
        if inner_path.startswith("/") or ".." in Path(inner_path).parts:
            raise LinkerError(f"Generated module path must stay inside the output tree: {inner_path}")

        self._stage(self.source_tree.root / inner_path, content_a)
        if content_b is not None:
            self._stage(self.runtime_tree.root / inner_path, content_b)
        if stub is not None:
            self._stage((self.runtime_tree.root / inner_path).with_suffix(".pyi"), stub)

    def emit(self, inner_path: str, render: Render, stub: str | None = None) -> None:
        """Render ``inner_path`` once per tree and stage both results."""
        self.write_module(
            inner_path,
            render(self.source_tree),
            render(self.runtime_tree),
            stub,
        )

    def _stage(self, path: Path, content: str) -> None:
        if path.suffix in (".py", ".pyi") and not content.startswith(BANNER):
            content = BANNER + content

        previous = self._staged.get(path)
        if previous is not None and previous != content:
            raise LinkerError("Two categories generate the same module", path=str(path))

        self._staged[path] = content

    def add_install(self, target: InstallTarget, part: FilePart, fragment: Fragment) -> None:
        """
        Add code to the install assembly.

        ``fragment`` is either plain text or a callable rendering text per
        output tree (for fragments that reference project entry points).
        """
        targets = (InstallTarget.SERVER, InstallTarget.CLIENT) if target is InstallTarget.BOTH else (target,)
        for t in targets:
            self._install.setdefault((t, part), []).append(fragment)

    def add_ui_file(self, entry_point: Path) -> None:
        """Record a UI entry point for the ``ui_files.json`` manifest."""
        if entry_point not in self._ui_files:
            self._ui_files.append(entry_point)

    # ── Assembly ─────────────────────────────────────────────────

    def finalize(self) -> None:
        """Render install files and the UI manifest into the staged set."""
        if self._finalized:
            return

        for target, file_name in INSTALL_FILES.items():
            install_target = InstallTarget(target)
            self.write_module(
                file_name,
                self._render_install(install_target, self.source_tree, file_name),
                self._render_install(install_target, self.runtime_tree, file_name),
            )

        self.write_module(
            UI_MANIFEST,
            self._render_manifest(self.source_tree),
            self._render_manifest(self.runtime_tree),
        )

        self._finalized = True

    def _render_install(self, target: InstallTarget, tree: OutputTree, inner_path: str) -> str:
        def part(p: FilePart) -> list[str]:
            fragments = self._install.get((target, p), [])
            return [f if isinstance(f, str) else f(tree) for f in fragments]

        header = "\n".join(part(FilePart.HEADER))
        return _TEMPLATES[target].substitute(
            banner=BANNER.rstrip("\n"),
            header=f"{header}\n" if header else "",
            body="".join(_indent(text) for text in part(FilePart.BODY)),
            footer="".join(_indent(text) for text in part(FilePart.FOOTER)),
        )

    def _render_manifest(self, tree: OutputTree) -> str:
        files = sorted(tree.entry(path, UI_MANIFEST) for path in self._ui_files)
        return json.dumps({"files": files}, indent=2) + "\n"

    # ── Commit ───────────────────────────────────────────────────

    def commit(self) -> list[Path]:
        """
        Write every staged file whose bytes differ from disk.

        Returns:
            The files actually written, in path order.
        """
        written: list[Path] = []

        for path in sorted(self._staged):
            if write_text_if_mismatch(path, self._staged[path]):
                logger.debug("module_written", path=str(path))
                written.append(path)

        self.written = written
        return written

    def prune(self) -> list[Path]:
        """
        Delete output files that this pass did not produce.

        The source tree belongs to the linker and is cleared of anything not
        staged. The runtime tree is shared with the bundler: only modules
        carrying the banner and the UI manifest are removed there.
        """
        removed: list[Path] = []

        for tree in self.trees:
            if not tree.root.is_dir():
                continue

            owned = tree.kind is TreeKind.SOURCE
            for path in sorted(tree.root.rglob("*"), reverse=True):
                if "__pycache__" in path.relative_to(tree.root).parts:
                    continue
                try:
                    if path.is_dir():
                        if not any(path.iterdir()):
                            path.rmdir()
                    elif path.name not in _KEEP and path not in self._staged:
                        if not owned and not is_generated(path):
                            continue
                        path.unlink()
                        removed.append(path)
                        logger.info("stale_module_removed", path=str(path))
                except OSError as e:
                    raise LinkerIOError(f"Can't remove stale output: {e}", path=str(path), cause=e) from e

        self.pruned = removed
        return removed


def is_generated(path: Path) -> bool:
    """True for files written by the linker: banner modules and the UI manifest."""
    if path.name == UI_MANIFEST:
        return True
    if path.suffix not in (".py", ".pyi"):
        return False
    try:
        with path.open(encoding="utf-8") as f:
            return f.readline() == BANNER
    except (OSError, UnicodeDecodeError):
        return False


__all__ = [
    "BANNER",
    "LAST_RUN_FILE",
    "LAST_PROOF_FILE",
    "UI_MANIFEST",
    "INSTALL_FILES",
    "TreeKind",
    "InstallTarget",
    "FilePart",
    "OutputTree",
    "CodeGenWriter",
    "is_generated",
]
