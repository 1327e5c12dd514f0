"""
Tests for conlink.core.settings.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from conlink.core.settings import LinkerSettings


def test_defaults(tmp_path):
    settings = LinkerSettings(project_root=tmp_path)

    assert settings.gate_mode == "mtime"
    assert settings.dist_suffix == ".pyc"
    assert settings.force is False
    assert settings.strict_conflicts is False
    assert settings.prune is True


def test_derived_paths(tmp_path):
    settings = LinkerSettings(project_root=tmp_path)

    assert settings.src_root == tmp_path.resolve() / "src"
    assert settings.output_src == tmp_path.resolve() / "src" / ".codegen"
    assert settings.output_dist == tmp_path.resolve() / "dist" / ".codegen"


def test_project_root_defaults_to_cwd():
    assert LinkerSettings().project_root == Path.cwd().resolve()


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("CONLINK_FORCE", "1")
    monkeypatch.setenv("CONLINK_GATE_MODE", "proof")
    monkeypatch.setenv("CONLINK_STRICT_CONFLICTS", "true")
    monkeypatch.setenv("CONLINK_DIST_SUFFIX", ".py")

    settings = LinkerSettings(project_root=tmp_path)
    assert settings.force is True
    assert settings.gate_mode == "proof"
    assert settings.strict_conflicts is True
    assert settings.dist_suffix == ".py"


def test_dotenv_file_in_working_directory():
    Path(".env").write_text("CONLINK_MODULE_PREFIX=pkg_\n")
    assert LinkerSettings().module_prefix == "pkg_"


@pytest.mark.parametrize("field, value", [("gate_mode", "sometimes"), ("dist_suffix", "pyc")])
def test_invalid_values(tmp_path, field, value):
    with pytest.raises(ValidationError):
        LinkerSettings(project_root=tmp_path, **{field: value})
