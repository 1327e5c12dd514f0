"""
Linker orchestrator.

``compile_project`` is the only caller of the scanner, the registry and the
writer. One pass looks like this::

    ┌──────────────┐   skip?   ┌───────────────┐
    │ IncrementalGate├────────►│ CompileReport │ (skipped)
    └──────┬───────┘           └───────────────┘
           │ run
           ▼
    load conlink_ext.py ─► configure(config)
           │
           ▼
    for mod_* in sorted(src/):          DISCOVERY
        module processors: on_begin_module
        @<type>/ and @alias/<type>/ ─► AliasType.discover ─► Registry.add
        module processors: on_end_module
    AliasType.finish_discovery
           │  registry frozen
           ▼
    AliasType.begin_emission / emit_item / end_emission     EMISSION
    ModuleProcessor.emit, install assembly, ui manifest
           │
           ▼
    CodeGenWriter.commit ─► prune ─► .last_run                COMMIT

Any LinkerError raised before COMMIT leaves both output trees and the
``.last_run`` timestamp untouched.

Manifesto:
    - **All or nothing:** generated modules are staged, then committed
    - **Deterministic:** modules, folders and registry keys are visited in
      sorted order so two passes on the same input produce the same bytes
    - **Owned state:** the Registry belongs to one CompilePass

Examples:
    >>> report = compile_project(LinkerSettings(project_root=Path("demo")))
    >>> report.skipped, len(report.written)
    (False, 14)

Tags:
    orchestrator, compile, pipeline, conlink

Doc-Types:
    - API Reference
    - Architecture Documentation
"""

from __future__ import annotations

import importlib.util
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from conlink.core.errors import LinkerConfigError, LinkerError
from conlink.core.hashing import compute_hash
from conlink.core.logging import LogContext, get_logger, log_step
from conlink.core.settings import LinkerSettings
from conlink.linker.alias_type import AliasType, DiscoverContext, ModuleProcessor
from conlink.linker.fs import list_entries
from conlink.linker.gate import IncrementalGate
from conlink.linker.markers import new_uid
from conlink.linker.registry import Registry
from conlink.linker.scanner import Scanner
from conlink.linker.writer import CodeGenWriter

logger = get_logger(__name__)

ALIAS_FOLDER = "@alias"


@dataclass
class LinkerConfig:
    """Settings plus the ordered processors of a project."""

    settings: LinkerSettings = field(default_factory=LinkerSettings)
    alias_types: list[AliasType] = field(default_factory=list)
    module_processors: list[ModuleProcessor] = field(default_factory=list)
    extensions: list[Path] = field(default_factory=list)

    def add_type(self, alias_type: AliasType) -> AliasType:
        if self.get_type(alias_type.name) is not None:
            raise LinkerConfigError(f"Alias type {alias_type.name} is declared twice")
        self.alias_types.append(alias_type)
        return alias_type

    def get_type(self, name: str) -> AliasType | None:
        for alias_type in self.alias_types:
            if alias_type.name == name:
                return alias_type
        return None

    def add_module_processor(self, processor: ModuleProcessor) -> ModuleProcessor:
        self.module_processors.append(processor)
        return processor


@dataclass
class CompileReport:
    """Outcome of one ``compile_project`` call."""

    skipped: bool = False
    modules: list[str] = field(default_factory=list)
    records: int = 0
    fixes: int = 0
    written: list[Path] = field(default_factory=list)
    pruned: list[Path] = field(default_factory=list)
    counters: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "skipped": self.skipped,
            "modules": list(self.modules),
            "records": self.records,
            "fixes": self.fixes,
            "written": [str(p) for p in self.written],
            "pruned": [str(p) for p in self.pruned],
            "counters": dict(self.counters),
        }


def discover_modules(settings: LinkerSettings) -> list[Path]:
    """Module roots: ``src/<module_prefix>*`` directories, sorted."""
    return [
        entry.path
        for entry in list_entries(settings.src_root)
        if entry.is_dir and entry.name.startswith(settings.module_prefix)
    ]


def load_extension(config: LinkerConfig) -> Path | None:
    """
    Load the project extension script and call its ``configure(config)``.

    A script runs once per config: a host reusing its config across passes
    (a watcher) keeps what the first call registered.

    Returns:
        Path of the loaded script, or None when the project has none.

    Raises:
        LinkerConfigError: The script could not be imported or failed.
    """
    script = config.settings.project_root / config.settings.extension_script
    if not script.is_file():
        return None
    if script in config.extensions:
        return script

    module_name = f"conlink_ext_{compute_hash(script, length=12)}"
    spec = importlib.util.spec_from_file_location(module_name, script)
    if spec is None or spec.loader is None:
        raise LinkerConfigError("Can't load the extension script", path=str(script))

    try:
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        configure = getattr(module, "configure", None)
        if callable(configure):
            configure(config)
    except LinkerError:
        raise
    except Exception as e:
        raise LinkerConfigError(f"The extension script failed: {e}", path=str(script), cause=e) from e

    config.extensions.append(script)
    logger.info("extension_loaded", path=str(script))
    return script


class CompilePass:
    """
    State of one compile pass: registry, scanner and staged writer.

    ``discover`` and ``emit`` can be called separately (the ``scan`` CLI
    command only discovers); ``run`` does everything including the commit.
    """

    def __init__(self, config: LinkerConfig, uid_factory: Callable[[], str] = new_uid):
        self.config = config
        self.settings = config.settings
        self.registry = Registry(strict_conflicts=self.settings.strict_conflicts)
        self.scanner = Scanner(uid_factory)
        self.writer = CodeGenWriter(self.settings, self.registry)
        self.modules: list[Path] = []
        self.counters: dict[str, int] = {}

    # ── Discovery ────────────────────────────────────────────────

    def discover(self) -> None:
        for alias_type in self.config.alias_types:
            alias_type.reset()
        for processor in self.config.module_processors:
            processor.reset()

        self.modules = discover_modules(self.settings)

        for module_dir in self.modules:
            ctx = self._context(module_dir)
            with LogContext(module=module_dir.name), log_step(
                "linker.module", level="debug", module=module_dir.name
            ):
                for processor in self.config.module_processors:
                    processor.on_begin_module(ctx)
                self._discover_module(ctx, module_dir)
                for processor in self.config.module_processors:
                    processor.on_end_module(ctx)

        ctx = self._context(None)
        for alias_type in self.config.alias_types:
            alias_type.finish_discovery(ctx)

        self.registry.freeze()

    def _context(self, module_dir: Path | None) -> DiscoverContext:
        return DiscoverContext(
            registry=self.registry,
            scanner=self.scanner,
            settings=self.settings,
            module_name=module_dir.name if module_dir else "",
            module_dir=module_dir,
            counters=self.counters,
        )

    def _discover_module(self, ctx: DiscoverContext, module_dir: Path) -> None:
        for entry in list_entries(module_dir):
            if not entry.is_dir or not entry.name.startswith("@"):
                continue

            if entry.name == ALIAS_FOLDER:
                for child in list_entries(entry.path):
                    if not child.is_dir or child.name.startswith((".", "_")):
                        continue
                    self._discover_type(ctx, child.path, child.name, "alias")
            else:
                self._discover_type(ctx, entry.path, entry.name[1:], "root")

    def _discover_type(self, ctx: DiscoverContext, type_dir: Path, name: str, position: str) -> None:
        alias_type = self.config.get_type(name)

        if alias_type is None or alias_type.position != position:
            where = f"{ALIAS_FOLDER}/{name}" if position == "alias" else f"@{name}"
            raise LinkerConfigError(f"Unknown alias type {where}", path=str(type_dir)).with_context(
                module=ctx.module_name
            )

        try:
            alias_type.discover(ctx, type_dir)
        except LinkerError as e:
            raise e.with_context(module=ctx.module_name, category_name=name)

    # ── Emission ─────────────────────────────────────────────────

    def emit(self) -> None:
        writer = self.writer

        for alias_type in self.config.alias_types:
            records = self.registry.items(alias_type.name)
            try:
                alias_type.begin_emission(writer)
                for key, record in records:
                    alias_type.emit_item(writer, key, record)
                alias_type.end_emission(writer, records)
            except LinkerError as e:
                raise e.with_context(category_name=alias_type.name)

            if alias_type.ui:
                for _, record in records:
                    if record.entry_point is not None:
                        writer.add_ui_file(record.entry_point)

        for processor in self.config.module_processors:
            processor.emit(writer)

        writer.finalize()

    # ── Commit ───────────────────────────────────────────────────

    def run(self, prune: bool | None = None) -> CompileReport:
        """Discover, emit and commit. Nothing is written if any phase fails."""
        self.discover()
        self.emit()

        written = self.writer.commit()
        do_prune = self.settings.prune if prune is None else prune
        pruned = self.writer.prune() if do_prune else []

        return CompileReport(
            modules=[m.name for m in self.modules],
            records=len(self.registry),
            fixes=self.scanner.fixes_applied,
            written=written,
            pruned=pruned,
            counters=dict(self.counters),
        )


def compile_project(
    settings: LinkerSettings | None = None,
    *,
    config: LinkerConfig | None = None,
    refresh: bool = False,
    uid_factory: Callable[[], str] = new_uid,
) -> CompileReport:
    """
    Run one linker pass on a project.

    Args:
        settings: Project settings (default: from the environment)
        config: Processors to use (default: :func:`default_linker_config`)
        refresh: Called from a watcher while the app runs: stale generated
            files are kept instead of pruned
        uid_factory: Generator for new identity tokens

    Returns:
        The pass report; ``report.skipped`` when the gate found no change.

    Raises:
        LinkerError: Any grammar, structure, reference or config error.
    """
    if config is None:
        from conlink.linker.defaults import default_linker_config

        config = default_linker_config(settings or LinkerSettings())
    elif settings is not None:
        config.settings = settings

    settings = config.settings
    gate = IncrementalGate(settings)

    with log_step("linker.compile", project=str(settings.project_root)) as timer:
        if not gate.should_run():
            timer.add_metric("skipped", True)
            return CompileReport(skipped=True)

        load_extension(config)

        compile_pass = CompilePass(config, uid_factory)
        report = compile_pass.run(prune=False if refresh else None)
        gate.record_success(changed=bool(report.written or report.pruned or report.fixes))

        timer.add_metric("records", report.records)
        timer.add_metric("written", len(report.written))

    return report


__all__ = [
    "ALIAS_FOLDER",
    "LinkerConfig",
    "CompileReport",
    "CompilePass",
    "discover_modules",
    "load_extension",
    "compile_project",
]
