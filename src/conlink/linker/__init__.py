"""
Linker engine: grammar, scanner, registry, writer, gate and orchestrator.

Import from here rather than from the submodules::

    from conlink.linker import compile_project, LinkerConfig, AliasType
"""

from conlink.linker.alias_type import AliasType, DiscoverContext, ModuleProcessor
from conlink.linker.defaults import default_linker_config
from conlink.linker.engine import CompilePass, CompileReport, LinkerConfig, compile_project
from conlink.linker.gate import IncrementalGate
from conlink.linker.priority import PriorityLevel
from conlink.linker.registry import DeclarationRecord, Registry, make_key, split_key
from conlink.linker.scanner import ItemDescriptor, NameConstraint, Scanner, ScanRules
from conlink.linker.writer import CodeGenWriter, FilePart, InstallTarget, OutputTree

__all__ = [
    "AliasType",
    "DiscoverContext",
    "ModuleProcessor",
    "default_linker_config",
    "CompilePass",
    "CompileReport",
    "LinkerConfig",
    "compile_project",
    "IncrementalGate",
    "PriorityLevel",
    "DeclarationRecord",
    "Registry",
    "make_key",
    "split_key",
    "ItemDescriptor",
    "NameConstraint",
    "Scanner",
    "ScanRules",
    "CodeGenWriter",
    "FilePart",
    "InstallTarget",
    "OutputTree",
]
