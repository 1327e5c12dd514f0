"""
Shared pytest fixtures for conlink tests.

This module provides:
- Environment isolation (no CONLINK_* variable leaks into a test)
- A ``project`` builder creating module trees under ``tmp_path``
- Deterministic uid factories for identity tests
- A fake host registry for exercising generated install assemblies

Usage:
    def test_something(project):
        project.file("src/mod_a/@alias/chunks/logo/index.py", "default = 'logo'")
        report = compile_project(project.settings())
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Callable, Generator
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest

from conlink.core.settings import LinkerSettings


# =============================================================================
# Environment Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def clean_conlink_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Generator[None, None, None]:
    """Drop CONLINK_* variables and run from an empty directory."""
    for name in list(os.environ):
        if name.startswith("CONLINK_"):
            monkeypatch.delenv(name, raising=False)
    workdir = tmp_path / "_cwd"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    yield


# =============================================================================
# Project Builder
# =============================================================================


class ProjectBuilder:
    """Creates files of a linker project rooted at ``root``."""

    def __init__(self, root: Path):
        root.mkdir(parents=True, exist_ok=True)
        self.root = root.resolve()
        self.src = self.root / "src"
        self.src.mkdir(exist_ok=True)

    def file(self, relative: str, content: str = "") -> Path:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        return path

    def dir(self, relative: str) -> Path:
        path = self.root / relative
        path.mkdir(parents=True, exist_ok=True)
        return path

    def entry(self, relative_dir: str, content: str = "default = None\n") -> Path:
        """Create ``<relative_dir>/index.py``."""
        return self.file(f"{relative_dir}/index.py", content)

    def settings(self, **overrides: Any) -> LinkerSettings:
        overrides.setdefault("gate_mode", "off")
        return LinkerSettings(project_root=self.root, **overrides)

    @property
    def output_src(self) -> Path:
        return self.src / ".codegen"

    @property
    def output_dist(self) -> Path:
        return self.root / "dist" / ".codegen"

    def snapshot(self) -> dict[str, bytes]:
        """Relative path -> bytes of every file below the project root, timestamp excluded."""
        return {
            p.relative_to(self.root).as_posix(): p.read_bytes()
            for p in sorted(self.root.rglob("*"))
            if p.is_file() and "__pycache__" not in p.parts and p.name != ".last_run"
        }


@pytest.fixture
def project(tmp_path: Path) -> ProjectBuilder:
    return ProjectBuilder(tmp_path / "project")


@pytest.fixture
def project_factory(tmp_path: Path) -> Callable[[str], ProjectBuilder]:
    """Builds several independent projects in one test."""

    def make(name: str) -> ProjectBuilder:
        return ProjectBuilder(tmp_path / name)

    return make


# =============================================================================
# Deterministic IDs
# =============================================================================


@pytest.fixture
def uid_factory() -> Callable[[], str]:
    """Returns uuid4 strings 00000000-0000-4000-8000-000000000001, ...2, ..."""
    counter = iter(range(1, 1_000_000))

    def next_uid() -> str:
        return str(uuid.UUID(int=next(counter), version=4))

    return next_uid


# =============================================================================
# Fake Host Registry
# =============================================================================


@pytest.fixture
def host_registry() -> SimpleNamespace:
    """Records what the generated install functions register."""
    calls: dict[str, list[Any]] = {
        "providers": [],
        "exposed": [],
        "proxies": [],
        "actions": [],
        "action_proxies": [],
        "finalized": [],
    }

    registry = SimpleNamespace(calls=calls)
    registry.events = SimpleNamespace(add_provider=lambda name, provider: calls["providers"].append((name, provider)))
    registry.data_tables = SimpleNamespace(
        expose=lambda table: calls["exposed"].append(table),
        add_proxy=lambda name, uid: calls["proxies"].append((name, uid)),
    )
    registry.server_actions = SimpleNamespace(
        expose=lambda action: calls["actions"].append(action),
        add_proxy=lambda name, uid: calls["action_proxies"].append((name, uid)),
    )
    registry.finalize = lambda: calls["finalized"].append(True)
    return registry
