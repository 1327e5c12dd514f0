"""Built-in category processors."""

from conlink.aliases.chunks import TypeChunk, TypeVariants
from conlink.aliases.data_tables import TypeDataTables
from conlink.aliases.events import TypeEvents, TypeServerEvents
from conlink.aliases.lists import ListGroup, ListMember, TypeList, order_members
from conlink.aliases.mod_installer import ModInstaller
from conlink.aliases.providers import TypeDataProvider, TypeObjectProvider
from conlink.aliases.server_actions import TypeServerActions
from conlink.aliases.translations import TypeTranslation
from conlink.aliases.ui_composite import TypeUiComposite

__all__ = [
    "TypeChunk",
    "TypeVariants",
    "TypeDataTables",
    "TypeDataProvider",
    "TypeObjectProvider",
    "TypeServerActions",
    "TypeEvents",
    "TypeServerEvents",
    "TypeList",
    "ListGroup",
    "ListMember",
    "order_members",
    "ModInstaller",
    "TypeTranslation",
    "TypeUiComposite",
]
