"""
Category processor contract.

An :class:`AliasType` owns one folder name (``events``, ``translations``...)
and turns what it finds there into registry records and generated modules.
The orchestrator drives every type through the same phases::

    reset()                      once per pass
    discover(ctx, type_dir)      once per module holding the type folder
    finish_discovery(ctx)        after all modules were scanned
    ── registry frozen ──
    begin_emission(writer)
    emit_item(writer, key, rec)  for each record of the type, in key order
    end_emission(writer, recs)

A :class:`ModuleProcessor` is the module-level counterpart: it sees every
module root and emits once at the end (install hooks, manifests).

Manifesto:
    - **Flat capability set:** types are looked up by name, no inheritance
      tricks in the orchestrator
    - **Per-pass state:** anything a type accumulates is cleared in ``reset``
    - **Malformed means fatal:** discovery raises, never skips silently

Examples:
    >>> class Logos(AliasType):
    ...     name = "logos"
    ...     def emit_item(self, writer, key, record):
    ...         ...
    >>> config.add_type(Logos())

Tags:
    plugins, categories, contract, conlink

Doc-Types:
    - API Reference
    - Extension Guide
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from conlink.core.errors import MarkerGrammarError
from conlink.core.logging import get_logger
from conlink.core.result import Err, Result
from conlink.linker.markers import Condition, MarkerHooks
from conlink.linker.registry import DeclarationRecord, Registry, make_key
from conlink.linker.scanner import ItemDescriptor, Scanner, ScanRules
from conlink.linker.writer import CodeGenWriter

if TYPE_CHECKING:
    from conlink.core.settings import LinkerSettings

logger = get_logger(__name__)


@dataclass
class DiscoverContext:
    """What a type sees while one module is being scanned."""

    registry: Registry
    scanner: Scanner
    settings: "LinkerSettings"
    module_name: str = ""
    module_dir: Path | None = None
    counters: dict[str, int] = field(default_factory=dict)

    def add(self, key: str, record: DeclarationRecord) -> bool:
        self.counters[record.category] = self.counters.get(record.category, 0) + 1
        return self.registry.add(key, record)


class AliasType:
    """
    Base category processor.

    The default ``discover`` scans the type folder with ``rules`` and
    registers each item under ``<name>!<identity>``; override ``on_item`` or
    ``discover`` for anything else.
    """

    name: str = ""
    position: Literal["alias", "root"] = "alias"
    ui: bool = False
    rules: ScanRules = ScanRules()

    def __init__(self, name: str | None = None):
        if name is not None:
            self.name = name
        if not self.name:
            raise ValueError(f"{type(self).__name__} needs a name")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"

    # ── Marker hooks ─────────────────────────────────────────────

    def normalize_condition(self, raw: str) -> Result[Condition]:
        return Err(MarkerGrammarError(f"Unknown condition: {raw}"))

    def canonical_feature(self, raw: str) -> str | None:
        return None

    def default_features(self) -> Mapping[str, bool]:
        return {}

    def marker_hooks(self) -> MarkerHooks:
        return MarkerHooks(
            normalize_condition=self.normalize_condition,
            normalize_feature=self.canonical_feature,
            default_features=self.default_features(),
        )

    # ── Discovery ────────────────────────────────────────────────

    def reset(self) -> None:
        """Clear per-pass state."""

    def discover(self, ctx: DiscoverContext, type_dir: Path) -> None:
        for item in ctx.scanner.scan(type_dir, self.rules, self.marker_hooks()):
            self.on_item(ctx, item)

    def on_item(self, ctx: DiscoverContext, item: ItemDescriptor) -> None:
        ctx.add(
            make_key(self.name, item.identity),
            DeclarationRecord(
                category=self.name,
                path=item.path,
                priority=item.priority,
                entry_point=item.entry_point,
                payload=item,
                module=ctx.module_name,
            ),
        )

    def finish_discovery(self, ctx: DiscoverContext) -> None:
        """Called once all modules were scanned, before the registry is frozen."""

    # ── Emission ─────────────────────────────────────────────────

    def begin_emission(self, writer: CodeGenWriter) -> None:
        pass

    def emit_item(self, writer: CodeGenWriter, key: str, record: DeclarationRecord) -> None:
        pass

    def end_emission(self, writer: CodeGenWriter, records: list[tuple[str, DeclarationRecord]]) -> None:
        pass


class ModuleProcessor:
    """Hooks run once per module root, plus a final emission step."""

    name: str = ""

    def reset(self) -> None:
        pass

    def on_begin_module(self, ctx: DiscoverContext) -> None:
        pass

    def on_end_module(self, ctx: DiscoverContext) -> None:
        pass

    def emit(self, writer: CodeGenWriter) -> None:
        pass


__all__ = ["DiscoverContext", "AliasType", "ModuleProcessor"]
