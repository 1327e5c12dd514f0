"""Core primitives shared by the linker: errors, results, logging, settings."""

from conlink.core.errors import (
    ErrorCategory,
    ErrorContext,
    LinkerConfigError,
    LinkerError,
    LinkerIOError,
    MarkerGrammarError,
    ReferenceTargetError,
    StructureError,
    TypeMismatchError,
)
from conlink.core.result import Err, Ok, Result, collect_results, from_optional

__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "LinkerError",
    "MarkerGrammarError",
    "StructureError",
    "ReferenceTargetError",
    "TypeMismatchError",
    "LinkerConfigError",
    "LinkerIOError",
    "Ok",
    "Err",
    "Result",
    "collect_results",
    "from_optional",
]
