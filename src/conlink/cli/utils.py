"""
CLI output helpers.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from conlink.core.errors import LinkerError
from conlink.core.logging import configure_logging
from conlink.core.settings import LinkerSettings

console = Console()
err_console = Console(stderr=True)


def make_settings(
    root: Path | None = None,
    *,
    force: bool | None = None,
    verbose: bool = False,
) -> LinkerSettings:
    """Build settings from the environment, overridden by CLI options."""
    overrides: dict[str, Any] = {}
    if root is not None:
        overrides["project_root"] = root
    if force:
        overrides["force"] = True
    if verbose:
        overrides["log_level"] = "DEBUG"

    settings = LinkerSettings(**overrides)
    configure_logging(
        level=settings.log_level,
        json_format=settings.log_format == "json",
        force=True,
    )
    return settings


def fail(error: LinkerError) -> None:
    """Print a linker error and exit with status 1."""
    err_console.print(f"[bold red]Linker Error[/bold red] - {escape(error.message)}", soft_wrap=True)
    if error.path:
        err_console.print(f"See: {escape(error.path)}", highlight=False, soft_wrap=True)
    raise typer.Exit(1)


def render_table(title: str, columns: list[str], rows: list[list[Any]]) -> None:
    table = Table(title=title)
    for column in columns:
        table.add_column(column)
    for row in rows:
        table.add_row(*[str(v) for v in row])
    console.print(table)
