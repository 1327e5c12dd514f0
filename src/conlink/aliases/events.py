"""
Event lists.

Each group under ``@alias/events/`` is an event name; its members are the
listeners, ordered like any list. The generated ``events/<name>.py`` exposes
``listeners`` and a :class:`~conlink.runtime.StaticEvent` named ``event``,
and both install assemblies register a lazy provider for it::

    registry.events.add_provider("app.ready", lambda: load_entry(__file__, "events/app.ready.py", "event"))

Events with no listener folder anywhere can still be declared from the
extension script with :meth:`TypeEvents.add_static_event`; they are emitted
as empty events so code can subscribe to them at runtime.

``@alias/serverEvents/`` has the same layout; its providers are registered
in the server install assembly only.
"""

from __future__ import annotations

from collections.abc import Iterable

from conlink.aliases.lists import ListGroup, TypeList
from conlink.linker.writer import CodeGenWriter, FilePart, InstallTarget, OutputTree


class TypeEvents(TypeList):
    name = "events"
    install_target = InstallTarget.BOTH

    def __init__(self, name: str | None = None, ref_category: str | None = None):
        super().__init__(name, ref_category)
        self._static_events: list[str] = []

    def add_static_event(self, event_name: str) -> None:
        if event_name not in self._static_events:
            self._static_events.append(event_name)

    @property
    def static_events(self) -> tuple[str, ...]:
        return tuple(self._static_events)

    def shadow_lists(self) -> Iterable[str]:
        return self._static_events

    def imports(self, tree: OutputTree) -> list[str]:
        lines = super().imports(tree)
        lines[-1] = "from conlink.runtime import StaticEvent, load_entry"
        return lines

    def exports(self, tree: OutputTree, group: ListGroup) -> list[str]:
        annotation = ": StaticEvent" if tree.annotated else ""
        return [
            "listeners = items",
            f"event{annotation} = StaticEvent({group.name!r}, listeners)",
            "default = event",
        ]

    def stub(self, group: ListGroup) -> str:
        return (
            "from typing import Any\n\n"
            "from conlink.runtime import StaticEvent\n\n"
            "items: list[Any]\n"
            "listeners: list[Any]\n"
            "event: StaticEvent\n"
            "default: StaticEvent\n"
        )

    def on_group_emitted(self, writer: CodeGenWriter, group: ListGroup, inner_path: str) -> None:
        writer.add_install(
            self.install_target,
            FilePart.BODY,
            f"registry.events.add_provider({group.name!r}, "
            f"lambda: load_entry(__file__, {inner_path!r}, 'event'))",
        )


class TypeServerEvents(TypeEvents):
    """Events only the server assembly provides: ``@alias/serverEvents/<name>``."""

    name = "serverEvents"
    install_target = InstallTarget.SERVER


__all__ = ["TypeEvents", "TypeServerEvents"]
