"""
Structured error types for the conlink linker.

Every failure the linker can detect while reading a project tree is a
``LinkerError``. The error always knows *where* it happened (the offending
filesystem path) and *what kind* of mistake it is, so the command line can
print a precise message and the test suite can assert on the category instead
of on message text.

Manifesto:
    - **Fatal by construction:** A linker error aborts the whole compile pass.
      There is no partial output and no local recovery.
    - **Path first:** The offending path travels with the error so the user
      can jump straight to the broken folder.
    - **Typed categories:** Grammar, structure and reference problems are
      distinct classes even though they are all handled the same way.
    - **Error chaining:** Underlying ``OSError``/``JSONDecodeError`` instances
      are kept as ``cause``.

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                        LinkerError                           │
        │            (category, context.path, context.key, cause)      │
        ├─────────────────────────────────────────────────────────────┤
        │                                                              │
        │  MarkerGrammarError   StructureError   ReferenceTargetError  │
        │  (GRAMMAR)            (STRUCTURE)      (REFERENCE)           │
        │                                              │               │
        │                                        TypeMismatchError     │
        │                                                              │
        │  LinkerConfigError    LinkerIOError                          │
        │  (CONFIG)             (IO)                                   │
        └─────────────────────────────────────────────────────────────┘

Examples:
    >>> error = MarkerGrammarError("Unknown priority name: urgent", path="/p/urgent.priority")
    >>> error.category
    <ErrorCategory.GRAMMAR: 'GRAMMAR'>
    >>> error.path
    '/p/urgent.priority'

Guardrails:
    ❌ DON'T: Call ``sys.exit`` from inside the linker
    ✅ DO: Raise (or return ``Err``) a LinkerError and let the CLI decide

    ❌ DON'T: Raise bare ``ValueError`` for a malformed marker file
    ✅ DO: Use the LinkerError subclass matching the mistake

Tags:
    error-handling, exception-hierarchy, linker, conlink

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Classification of linker failures.

    Attributes:
        GRAMMAR: Malformed or unknown marker file (priority, cond, feature, ...)
        STRUCTURE: Missing entry point, identity mismatch, incompatible merge
        REFERENCE: ``.ref`` target missing or of the wrong category
        CONFIG: Invalid linker configuration (unknown category folder, ...)
        IO: Filesystem failure while reading or writing
        INTERNAL: Bugs, unexpected state
    """

    GRAMMAR = "GRAMMAR"
    STRUCTURE = "STRUCTURE"
    REFERENCE = "REFERENCE"
    CONFIG = "CONFIG"
    IO = "IO"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to a LinkerError.

    Attributes:
        path: Filesystem path of the offending item or marker file
        key: Composite registry key involved, if any
        category_name: Name of the alias type (``events``, ``translations``...)
        module: Name of the module being scanned
        metadata: Additional key-value pairs
    """

    path: str | None = None
    key: str | None = None
    category_name: str | None = None
    module: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["path", "key", "category_name", "module"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class LinkerError(Exception):
    """
    Base exception for every fatal linker condition.

    Subclasses set ``default_category``. The constructor accepts the
    offending path directly because nearly every call site has one.

    Examples:
        >>> err = LinkerError("boom", path="/tmp/x")
        >>> err.to_dict()["context"]
        {'path': '/tmp/x'}
        >>> err.with_context(key="events!ready").context.key
        'events!ready'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if path is not None:
            self.context.path = str(path)

        if cause is not None:
            self.__cause__ = cause

    @property
    def path(self) -> str | None:
        """The offending filesystem path, if known."""
        return self.context.path

    def with_context(self, **kwargs: Any) -> LinkerError:
        """
        Add context to this error (fluent API).

        Usage:
            raise StructureError("No entry point").with_context(
                category_name="events", module="mod_core"
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# GRAMMAR / STRUCTURE / REFERENCE
# =============================================================================


class MarkerGrammarError(LinkerError):
    """
    A marker file could not be interpreted.

    Raised for unknown tiers, unknown conditions or features, duplicate
    exclusive markers (two ``.priority`` files in one folder) and marker kinds
    that the category does not allow in this place.
    """

    default_category = ErrorCategory.GRAMMAR


class StructureError(LinkerError):
    """The folder layout breaks a category rule (missing entry point, uid mismatch...)."""

    default_category = ErrorCategory.STRUCTURE


class ReferenceTargetError(LinkerError):
    """A reference points at a registry key that does not exist."""

    default_category = ErrorCategory.REFERENCE


class TypeMismatchError(ReferenceTargetError):
    """A registry key exists but belongs to another category."""

    def __init__(self, key: str, expected: str, actual: str, *, path: str | None = None):
        super().__init__(
            f"The item {key} is not of the expected type @{expected} (found @{actual})",
            path=path,
        )
        self.context.key = key
        self.expected = expected
        self.actual = actual


# =============================================================================
# CONFIG / IO
# =============================================================================


class LinkerConfigError(LinkerError):
    """Invalid linker configuration or unknown category folder."""

    default_category = ErrorCategory.CONFIG


class LinkerIOError(LinkerError):
    """Filesystem failure while scanning or writing generated modules."""

    default_category = ErrorCategory.IO


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, LinkerError):
        return error.category
    if isinstance(error, OSError):
        return ErrorCategory.IO
    return ErrorCategory.INTERNAL


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
    "categorize_error",
]
