"""Linker settings.

Every knob the linker reads from the environment lives here, validated once
with pydantic-settings. Variables use the ``CONLINK_`` prefix and may come
from a ``.env`` file in the working directory.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.
    A dev server, a CI job and a test each build their own ``LinkerSettings``
    instead of sharing module globals.

Features:
    - **LinkerSettings:** project layout, gate mode, conflict policy, logging
    - **CONLINK_FORCE=1:** bypass the incremental gate for one run
    - **Derived paths:** ``src_root``, ``output_src``, ``output_dist``

Examples:
    >>> settings = LinkerSettings(project_root=Path("/work/demo"))
    >>> settings.output_src
    PosixPath('/work/demo/src/.codegen')

Tags:
    settings, configuration, pydantic, environment, conlink

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LinkerSettings(BaseSettings):
    """Settings for one linker invocation.

    Fields
    ──────
    project_root     : Project directory (defaults to the working directory)
    source_dir       : Directory holding the ``mod_*`` modules
    dist_dir         : Runtime mirror of ``source_dir``
    output_dir       : Name of the generated tree inside src and dist
    module_prefix    : Prefix identifying module directories
    force            : Skip the incremental gate
    gate_mode        : ``mtime`` | ``proof`` | ``off``
    strict_conflicts : Equal-priority duplicates become fatal errors
    dist_suffix      : Suffix of entry points referenced from the dist tree
    default_language : Conventional default translation language
    extension_script : Project-level script loaded before scanning
    prune            : Remove stale generated files after a pass
    log_level        : Structlog log level
    log_format       : ``console`` | ``json``
    """

    model_config = SettingsConfigDict(
        env_prefix="CONLINK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Layout ───────────────────────────────────────────────────
    project_root: Path = Field(default_factory=Path.cwd)
    source_dir: str = "src"
    dist_dir: str = "dist"
    output_dir: str = ".codegen"
    module_prefix: str = "mod_"

    # ── Incremental gate ─────────────────────────────────────────
    force: bool = False
    gate_mode: Literal["mtime", "proof", "off"] = "mtime"

    # ── Generation ───────────────────────────────────────────────
    strict_conflicts: bool = False
    dist_suffix: str = ".pyc"
    default_language: str = "en-us"
    extension_script: str = "conlink_ext.py"
    prune: bool = True

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"

    @field_validator("dist_suffix")
    @classmethod
    def _suffix_has_dot(cls, value: str) -> str:
        if not value.startswith("."):
            raise ValueError("dist_suffix must start with '.'")
        return value

    @field_validator("project_root")
    @classmethod
    def _absolute_root(cls, value: Path) -> Path:
        return value.expanduser().resolve()

    @property
    def src_root(self) -> Path:
        return self.project_root / self.source_dir

    @property
    def dist_root(self) -> Path:
        return self.project_root / self.dist_dir

    @property
    def output_src(self) -> Path:
        """Tree A: annotated generated sources."""
        return self.src_root / self.output_dir

    @property
    def output_dist(self) -> Path:
        """Tree B: runtime-layout generated sources."""
        return self.dist_root / self.output_dir
