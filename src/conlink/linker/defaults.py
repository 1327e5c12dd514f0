"""Processor set used when the host supplies none."""

from __future__ import annotations

from conlink.core.settings import LinkerSettings
from conlink.linker.engine import LinkerConfig


def default_linker_config(settings: LinkerSettings | None = None) -> LinkerConfig:
    """
    Build a config with the built-in categories, in emission order.

    ==========================  ===============================
    folder                      processor
    ==========================  ===============================
    ``@alias/chunks``           TypeChunk
    ``@alias/uiComponents``     TypeChunk (ui)
    ``@alias/variants``         TypeVariants
    ``@alias/dataTables``       TypeDataTables
    ``@alias/dataProviders``    TypeDataProvider
    ``@alias/objectProviders``  TypeObjectProvider
    ``@alias/serverActions``    TypeServerActions
    ``@alias/lists``            TypeList
    ``@alias/events``           TypeEvents
    ``@alias/serverEvents``     TypeServerEvents
    ``@alias/uiComposites``     TypeUiComposite
    ``@alias/translations``     TypeTranslation
    ==========================  ===============================
    """
    from conlink.aliases import (
        ModInstaller,
        TypeChunk,
        TypeDataProvider,
        TypeDataTables,
        TypeEvents,
        TypeList,
        TypeObjectProvider,
        TypeServerActions,
        TypeServerEvents,
        TypeTranslation,
        TypeUiComposite,
        TypeVariants,
    )

    config = LinkerConfig(settings=settings or LinkerSettings())
    config.add_type(TypeChunk("chunks"))
    config.add_type(TypeChunk("uiComponents", ui=True))
    config.add_type(TypeVariants())
    config.add_type(TypeDataTables())
    config.add_type(TypeDataProvider())
    config.add_type(TypeObjectProvider())
    config.add_type(TypeServerActions())
    config.add_type(TypeList("lists"))
    config.add_type(TypeEvents())
    config.add_type(TypeServerEvents())
    config.add_type(TypeUiComposite())
    config.add_type(TypeTranslation())
    config.add_module_processor(ModInstaller())
    return config


__all__ = ["default_linker_config"]
