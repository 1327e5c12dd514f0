"""
Structured logging for the linker.

Manifesto:
    The linker runs inside dev servers and CI. Its diagnostics (a dropped
    duplicate, a merged translation key, a skipped pass) must be greppable and
    carry the registry key and path as fields, not buried in prose.

    - **Structured:** ``logger.info("registry_item_ignored", key=..., path=...)``
    - **Context:** the module being scanned is bound with ``LogContext``
    - **Timed:** ``log_step`` wraps a compile pass with ``duration_ms``

Architecture:
    ::

        configure_logging(level="INFO", json_format=False)
              │
              ▼
        structlog processor chain:
          1. merge_contextvars
          2. add_log_level / add_logger_name
          3. TimeStamper(iso)
          4. ConsoleRenderer | JSONRenderer

Examples:
    >>> from conlink.core.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG")
    >>> logger = get_logger(__name__)
    >>> logger.debug("registry_item_added", key="events!ready")

Tags:
    logging, structlog, observability, conlink

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import logging
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

import structlog
from structlog.types import Processor


_configured = False


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    force: bool = False,
) -> None:
    """Configure structured logging for the application.

    Subsequent calls are no-ops unless ``force=True``.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for auto (JSON if not tty)
        force: Reconfigure even if already configured
    """
    global _configured

    if _configured and not force:
        return

    if json_format is None:
        json_format = not sys.stderr.isatty()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
    ]

    if json_format:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper()),
        force=True,
    )

    _configured = True


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context to include in all subsequent logs."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove specific keys from logging context."""
    structlog.contextvars.unbind_contextvars(*keys)


class LogContext:
    """Context manager for scoped logging context.

    Example:
        with LogContext(module="mod_core"):
            logger.info("module_scan_started")
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> "LogContext":
        bind_context(**self._context)
        return self

    def __exit__(self, *args) -> None:
        unbind_context(*self._context.keys())


@dataclass
class TimingResult:
    """Result of a timed step."""

    step: str
    started_at: float = field(default_factory=time.perf_counter)
    ended_at: float | None = None
    metrics: dict[str, Any] = field(default_factory=dict)

    def stop(self) -> "TimingResult":
        self.ended_at = time.perf_counter()
        return self

    @property
    def duration_ms(self) -> float:
        end = self.ended_at if self.ended_at is not None else time.perf_counter()
        return (end - self.started_at) * 1000

    def add_metric(self, key: str, value: Any) -> "TimingResult":
        """Add a metric to include in the end log line."""
        self.metrics[key] = value
        return self


@contextmanager
def log_step(event: str, level: str = "info", **extra: Any) -> Iterator[TimingResult]:
    """
    Log ``<event>.start`` at DEBUG and ``<event>.end`` with ``duration_ms``.

    On exception the end line is logged at ERROR with the error type and the
    exception is re-raised untouched.

    Usage:
        with log_step("linker.compile", project="demo") as timer:
            ...
            timer.add_metric("written", 12)
    """
    logger = get_logger("conlink")
    timer = TimingResult(step=event)
    logger.debug(f"{event}.start", **extra)
    try:
        yield timer
    except Exception as e:
        timer.stop()
        logger.error(
            f"{event}.failed",
            duration_ms=round(timer.duration_ms, 2),
            error_type=type(e).__name__,
            **extra,
        )
        raise
    timer.stop()
    getattr(logger, level)(
        f"{event}.end",
        duration_ms=round(timer.duration_ms, 2),
        **extra,
        **timer.metrics,
    )


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "LogContext",
    "TimingResult",
    "log_step",
]
