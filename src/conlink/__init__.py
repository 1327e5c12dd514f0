"""
conlink: convention-over-configuration linker.

Scans ``src/mod_*`` module folders, reads their naming conventions and
marker files, arbitrates conflicts by priority and writes generated Python
glue modules under ``src/.codegen`` and ``dist/.codegen``.

Quick start::

    from conlink import LinkerSettings, compile_project

    report = compile_project(LinkerSettings(project_root="my_app"))
    print(report.written)
"""

__version__ = "0.1.0"

from conlink.core.errors import LinkerError
from conlink.core.settings import LinkerSettings
from conlink.linker import (
    AliasType,
    CompilePass,
    CompileReport,
    LinkerConfig,
    ModuleProcessor,
    PriorityLevel,
    compile_project,
    default_linker_config,
)

__all__ = [
    "__version__",
    "LinkerError",
    "LinkerSettings",
    "AliasType",
    "CompilePass",
    "CompileReport",
    "LinkerConfig",
    "ModuleProcessor",
    "PriorityLevel",
    "compile_project",
    "default_linker_config",
]
