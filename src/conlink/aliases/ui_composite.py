"""UI composites: ordered lists of UI parts rendered together."""

from __future__ import annotations

from conlink.aliases.lists import ListGroup, TypeList
from conlink.linker.writer import OutputTree


class TypeUiComposite(TypeList):
    """
    A list whose members are render callables.

    The generated module exposes ``members`` and ``render(**props)``, which
    calls every member with the same props and returns their results in
    order.
    """

    name = "uiComposites"
    ui = True

    def exports(self, tree: OutputTree, group: ListGroup) -> list[str]:
        if tree.annotated:
            signature = "def render(**props: Any) -> list[Any]:"
        else:
            signature = "def render(**props):"
        return [
            "members = items",
            "",
            "",
            signature,
            "    return [member(**props) for member in members]",
            "",
            "",
            "default = render",
        ]

    def stub(self, group: ListGroup) -> str:
        return (
            "from typing import Any\n\n"
            "items: list[Any]\n"
            "members: list[Any]\n\n"
            "def render(**props: Any) -> list[Any]: ...\n\n"
            "default = render\n"
        )


__all__ = ["TypeUiComposite"]
