"""
Result envelope for the pure parts of the linker.

The marker-file grammar and the registry lookups never raise. They return
``Ok[T]`` on success or ``Err[T]`` carrying a :class:`LinkerError`. Callers
that sit on a filesystem boundary (the scanner, the alias types) decide when
to ``unwrap()`` and therefore when the error turns into an exception.

Manifesto:
    - **Explicit over Implicit:** Decoding failures are values, not surprises
    - **Testable:** Grammar rules can be asserted on without ``pytest.raises``
    - **One conversion point:** ``unwrap()`` raises the carried LinkerError

Architecture:
    ::

        ┌─────────────────┬─────────────────┬─────────────────────────┐
        │     Ok[T]       │     Err[T]      │     Utilities           │
        ├─────────────────┼─────────────────┼─────────────────────────┤
        │ • value: T      │ • error: Exc    │ • collect_results()     │
        │ • map()         │ • map_err()     │ • from_optional()       │
        │ • flat_map()    │ • unwrap_or()   │                         │
        │ • unwrap()      │ • unwrap() ↯    │                         │
        └─────────────────┴─────────────────┴─────────────────────────┘

Examples:
    >>> from conlink.linker.markers import decode_priority
    >>> match decode_priority("very-high.priority"):
    ...     case Ok(decoded):
    ...         print(decoded.level.name)
    ...     case Err(error):
    ...         print(error.message)
    VERY_HIGH

Tags:
    result-pattern, error-handling, functional, conlink

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

from conlink.core.errors import LinkerError


T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """
    Successful result containing a value.

    Examples:
        >>> Ok(10).map(lambda x: x * 2).unwrap()
        20
        >>> Ok(3).is_err()
        False
    """

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Get the value. Safe for Ok."""
        return self.value

    def unwrap_or(self, default: T) -> T:
        """Get value or default (always returns value for Ok)."""
        return self.value

    def map(self, f: Callable[[T], U]) -> Result[U]:
        """Transform the value if Ok."""
        return Ok(f(self.value))

    def flat_map(self, f: Callable[[T], Result[U]]) -> Result[U]:
        """Chain to another Result-returning function."""
        return f(self.value)

    def map_err(self, f: Callable[[Exception], Exception]) -> Result[T]:
        """Transform error if Err (no-op for Ok)."""
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"ok": True, "value": self.value}

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[T]):
    """
    Failed result containing an error.

    ``unwrap()`` raises the carried error, which is how a pure decoding
    failure becomes a fatal linker error at the scanner boundary.

    Examples:
        >>> from conlink.core.errors import MarkerGrammarError
        >>> err = Err(MarkerGrammarError("Unknown condition: x", path="/p/x.cond"))
        >>> err.unwrap_or("fallback")
        'fallback'
        >>> err.to_dict()["error"]["category"]
        'GRAMMAR'
    """

    error: Exception

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        """Raise the error. Use only when you're sure it's Ok."""
        raise self.error

    def unwrap_or(self, default: T) -> T:
        """Get default since this is Err."""
        return default

    def map(self, f: Callable[[T], U]) -> Result[U]:
        """No-op for Err."""
        return Err(self.error)

    def flat_map(self, f: Callable[[T], Result[U]]) -> Result[U]:
        """No-op for Err."""
        return Err(self.error)

    def map_err(self, f: Callable[[Exception], Exception]) -> Result[T]:
        """Transform the error."""
        return Err(f(self.error))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        if isinstance(self.error, LinkerError):
            return {"ok": False, "error": self.error.to_dict()}
        return {
            "ok": False,
            "error": {
                "error_type": type(self.error).__name__,
                "message": str(self.error),
            },
        }

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


# Type alias for Result
Result = Ok[T] | Err[T]


def collect_results(results: list[Result[T]]) -> Result[list[T]]:
    """
    Collect a list of Results into a Result of list (fail-fast).

    Examples:
        >>> collect_results([Ok(1), Ok(2)]).unwrap()
        [1, 2]
        >>> collect_results([Ok(1), Err(ValueError("a")), Err(ValueError("b"))]).error.args
        ('a',)
    """
    values = []
    for result in results:
        match result:
            case Ok(value):
                values.append(value)
            case Err(error):
                return Err(error)
    return Ok(values)


def from_optional(value: T | None, error: Exception) -> Result[T]:
    """Ok(value) when value is not None, else Err(error)."""
    if value is None:
        return Err(error)
    return Ok(value)


__all__ = [
    "Result",
    "Ok",
    "Err",
    "collect_results",
    "from_optional",
]
