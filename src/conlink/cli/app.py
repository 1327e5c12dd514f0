"""
Root Typer application for the conlink CLI.

Commands:
    compile   run one linker pass (honours the incremental gate)
    scan      discovery only, prints the registry
    version   print the installed version
"""

from __future__ import annotations

from pathlib import Path

import typer
from typer import Typer

from conlink.cli.utils import console, fail, make_settings, render_table
from conlink.core.errors import LinkerError

app = Typer(
    name="conlink",
    help="conlink: link convention-based project folders into generated Python glue.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _package_version() -> str:
    from importlib.metadata import PackageNotFoundError
    from importlib.metadata import version as pkg_version

    try:
        return pkg_version("conlink")
    except PackageNotFoundError:
        from conlink import __version__

        return __version__


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"conlink {_package_version()}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """conlink CLI: compile and inspect linker output."""


# ── Commands ─────────────────────────────────────────────────────────────

_ROOT = typer.Option(None, "--root", "-r", help="Project root (default: current directory).")


@app.command("compile")
def compile_cmd(
    root: Path | None = _ROOT,  # noqa: UP007
    force: bool = typer.Option(False, "--force", "-f", help="Ignore the incremental gate."),
    refresh: bool = typer.Option(False, "--refresh", help="Keep stale generated files (watcher mode)."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    """Run one linker pass."""
    from conlink.linker.engine import compile_project

    settings = make_settings(root, force=force, verbose=verbose)

    try:
        report = compile_project(settings, refresh=refresh)
    except LinkerError as e:
        fail(e)
        return

    if report.skipped:
        console.print("[dim]skipped: no change since last run[/dim]")
        return

    console.print(
        f"[green]linked[/green] {len(report.modules)} module(s), {report.records} item(s), "
        f"{len(report.written)} file(s) written, {len(report.pruned)} removed",
        soft_wrap=True,
    )


@app.command("scan")
def scan_cmd(
    root: Path | None = _ROOT,  # noqa: UP007
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    """Discover declarations and print the registry. Writes no generated module."""
    from conlink.linker.defaults import default_linker_config
    from conlink.linker.engine import CompilePass, load_extension

    settings = make_settings(root, verbose=verbose)
    config = default_linker_config(settings)

    try:
        load_extension(config)
        compile_pass = CompilePass(config)
        compile_pass.discover()
    except LinkerError as e:
        fail(e)
        return

    rows = [
        [key, record.category, record.priority.canonical_name, record.path.relative_to(settings.project_root)]
        for key, record in compile_pass.registry.items()
    ]
    render_table("Registry", ["Key", "Category", "Priority", "Path"], rows)


@app.command("version")
def version_cmd() -> None:
    """Print the installed version."""
    typer.echo(f"conlink {_package_version()}")
