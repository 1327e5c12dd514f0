"""
Integration tests for conlink.linker.engine: full compile passes.

Covers:
- Priority arbitration across modules and list ordering in generated code
- Idempotence, determinism and identity stability
- All-or-nothing failure (nothing written, no timestamp)
- Extension script, root-position types, install assemblies
"""

import asyncio
from pathlib import Path

import pytest

from conlink.core.errors import LinkerConfigError, MarkerGrammarError, ReferenceTargetError, StructureError
from conlink.linker.alias_type import AliasType
from conlink.linker.defaults import default_linker_config
from conlink.linker.engine import CompilePass, compile_project, discover_modules
from conlink.runtime import load_install, load_module

pytestmark = pytest.mark.integration


def listener(name: str) -> str:
    return f"def default(*args):\n    return {name!r}\n"


def build_demo(project) -> None:
    project.file("src/mod_a/@alias/chunks/logo/index.py", "default = 'logo-a'\n")
    project.file("src/mod_a/@alias/chunks/logo/low.priority")
    project.file("src/mod_b/@alias/chunks/logo/index.py", "default = 'logo-b'\n")
    project.file("src/mod_b/@alias/chunks/logo/High.priority")

    project.file("src/mod_a/@alias/events/app.ready/b/index.py", listener("b"))
    project.file("src/mod_a/@alias/events/app.ready/b/low.priority")
    project.file("src/mod_a/@alias/events/app.ready/a/index.py", listener("a"))
    project.file("src/mod_a/@alias/events/app.ready/a/very-high.priority")
    project.file("src/mod_b/@alias/events/app.ready/c/index.py", listener("c"))
    project.file("src/mod_b/@alias/events/app.ready/d/index.py", listener("d"))
    project.file("src/mod_b/@alias/events/app.ready/d/VeryHigh.priority")

    project.file(
        "src/mod_a/server_init.py",
        "async def init(registry):\n    registry.calls['server_init'] = ['mod_a']\n",
    )


class TestCompile:
    def test_higher_priority_module_wins(self, project):
        build_demo(project)
        compile_project(project.settings())

        assert load_module(project.output_src / "chunks/logo.py").default == "logo-b"

    def test_list_order_tier_major_then_name(self, project):
        build_demo(project)
        compile_project(project.settings())

        event = load_module(project.output_src / "events/app.ready.py").event
        assert event.name == "app.ready"
        assert event.send() == ["a", "d", "c", "b"]

    def test_report(self, project):
        build_demo(project)
        report = compile_project(project.settings())

        assert not report.skipped
        assert report.modules == ["mod_a", "mod_b"]
        assert report.records == 5
        assert project.output_src / "chunks/logo.py" in report.written
        assert project.output_dist / "chunks/logo.py" in report.written
        assert project.output_dist / "chunks/logo.pyi" in report.written

    def test_markers_canonicalized(self, project):
        build_demo(project)
        compile_project(project.settings())

        logo_b = project.src / "mod_b/@alias/chunks/logo"
        assert (logo_b / "high.priority").read_text() == "high.priority"
        assert not (logo_b / "High.priority").exists()

    def test_dist_tree_references_bytecode(self, project):
        build_demo(project)
        compile_project(project.settings())

        text = (project.output_dist / "chunks/logo.py").read_text()
        assert "'../../mod_b/@alias/chunks/logo/index.pyc'" in text

    def test_install_assemblies(self, project, host_registry):
        build_demo(project)
        compile_project(project.settings())

        server_install = load_install(project.output_src, "server")
        asyncio.run(server_install(host_registry))

        assert host_registry.calls["server_init"] == ["mod_a"]
        ((name, provider),) = host_registry.calls["providers"]
        assert name == "app.ready"
        assert provider().send() == ["a", "d", "c", "b"]

        client_install = load_install(project.output_src, "client")
        client_install(host_registry)
        assert host_registry.calls["finalized"] == [True]

    def test_modules_sorted_and_prefixed(self, project):
        project.dir("src/mod_b")
        project.dir("src/mod_a")
        project.dir("src/shared")
        assert [p.name for p in discover_modules(project.settings())] == ["mod_a", "mod_b"]


class TestIdempotence:
    def test_second_pass_touches_nothing(self, project):
        build_demo(project)
        compile_project(project.settings())
        before = project.snapshot()

        report = compile_project(project.settings())

        assert report.written == []
        assert report.fixes == 0
        assert project.snapshot() == before

    def test_deterministic_across_projects(self, project_factory):
        first, second = project_factory("one"), project_factory("two")
        for p in (first, second):
            build_demo(p)
            compile_project(p.settings())

        def generated(p):
            return {k: v for k, v in p.snapshot().items() if ".codegen" in k}

        assert generated(first) == generated(second)

    def test_identity_folder_stable(self, project, uid_factory):
        project.file("src/mod_a/@alias/chunks/_/index.py", "default = 'anon'\n")

        compile_project(project.settings(), uid_factory=uid_factory)
        uid = "00000000-0000-4000-8000-000000000001"
        assert (project.src / "mod_a/@alias/chunks" / uid / "index.py").is_file()
        assert load_module(project.output_src / f"chunks/{uid}.py").default == "anon"

        before = project.snapshot()
        compile_project(project.settings(), uid_factory=uid_factory)
        assert project.snapshot() == before

    def test_unchanged_pass_keeps_timestamp(self, project):
        build_demo(project)
        compile_project(project.settings())
        last_run = project.output_src / ".last_run"
        last_run.write_text("1")

        compile_project(project.settings())
        assert last_run.read_text() == "1"

        project.file("src/mod_a/@alias/chunks/extra/index.py", "default = 1\n")
        compile_project(project.settings())
        assert last_run.read_text() != "1"

    def test_runtime_artifacts_survive_recompile(self, project):
        build_demo(project)
        compile_project(project.settings())
        compiled = project.file("dist/.codegen/chunks/logo.pyc", "bytecode")

        project.file("src/mod_b/@alias/chunks/logo/index.py", "default = 'logo-b2'\n")
        report = compile_project(project.settings())

        assert compiled.exists()
        assert compiled not in report.pruned


class TestFailure:
    def test_two_priorities_abort_without_output(self, project):
        build_demo(project)
        bad = project.src / "mod_b/@alias/chunks/logo"
        project.file("src/mod_b/@alias/chunks/logo/low.priority")

        with pytest.raises(MarkerGrammarError) as exc_info:
            compile_project(project.settings(gate_mode="mtime"))

        assert Path(exc_info.value.path).parent == bad
        assert not project.output_src.exists()
        assert not project.output_dist.exists()

    def test_failed_pass_keeps_previous_output(self, project):
        build_demo(project)
        compile_project(project.settings())
        last_run = (project.output_src / ".last_run").read_text()
        before = {k: v for k, v in project.snapshot().items() if ".codegen" in k}

        project.file("src/mod_a/@alias/chunks/extra/index.py", "default = 1\n")
        project.file("src/mod_a/@alias/chunks/extra/urgent.priority")

        with pytest.raises(MarkerGrammarError):
            compile_project(project.settings())

        assert (project.output_src / ".last_run").read_text() == last_run
        assert {k: v for k, v in project.snapshot().items() if ".codegen" in k} == before

    def test_unknown_alias_type(self, project):
        project.entry("src/mod_a/@alias/bogus/x")
        with pytest.raises(LinkerConfigError, match="@alias/bogus") as exc_info:
            compile_project(project.settings())
        assert exc_info.value.context.module == "mod_a"

    def test_unknown_root_type(self, project):
        project.entry("src/mod_a/@pages/home")
        with pytest.raises(LinkerConfigError, match="@pages"):
            compile_project(project.settings())

    def test_strict_conflicts(self, project):
        project.entry("src/mod_a/@alias/chunks/logo")
        project.entry("src/mod_b/@alias/chunks/logo")
        with pytest.raises(StructureError, match="same priority"):
            compile_project(project.settings(strict_conflicts=True))

    def test_dangling_reference(self, project):
        project.file("src/mod_a/@alias/lists/menu/home/chunks!missing.ref")
        with pytest.raises(ReferenceTargetError, match="chunks!missing"):
            compile_project(project.settings())


class TestGateIntegration:
    def test_second_pass_skipped(self, project):
        build_demo(project)
        assert not compile_project(project.settings(gate_mode="mtime")).skipped
        assert compile_project(project.settings(gate_mode="mtime")).skipped

    def test_refresh_keeps_stale_output(self, project):
        build_demo(project)
        stale = project.file("src/.codegen/chunks/removed.py", "x = 1\n")

        compile_project(project.settings(), refresh=True)
        assert stale.exists()

        compile_project(project.settings())
        assert not stale.exists()


class TestExtensibility:
    def test_extension_script_configures_pass(self, project):
        project.file(
            "conlink_ext.py",
            "def configure(config):\n    config.get_type('events').add_static_event('app.shutdown')\n",
        )
        compile_project(project.settings())

        module = load_module(project.output_src / "events/app.shutdown.py")
        assert module.listeners == []
        assert module.event.send() == []

    def test_failing_extension_script(self, project):
        project.file("conlink_ext.py", "raise RuntimeError('boom')\n")
        with pytest.raises(LinkerConfigError, match="boom"):
            compile_project(project.settings())

    def test_root_position_type(self, project):
        class Pages(AliasType):
            name = "pages"
            position = "root"

            def emit_item(self, writer, key, record):
                writer.write_module(f"pages/{record.path.name}.py", "PAGE = True\n")

        project.entry("src/mod_a/@pages/home")
        config = default_linker_config(project.settings())
        config.add_type(Pages())

        compile_project(config=config)
        assert (project.output_src / "pages/home.py").is_file()

    def test_scan_only_writes_no_module(self, project):
        build_demo(project)
        compile_pass = CompilePass(default_linker_config(project.settings()))
        compile_pass.discover()

        assert "chunks!logo" in compile_pass.registry
        assert not project.output_src.exists()

    def test_extension_runs_once_per_config(self, project):
        project.file(
            "conlink_ext.py",
            "from conlink.aliases import TypeChunk\n\n"
            "def configure(config):\n    config.add_type(TypeChunk('widgets'))\n",
        )
        project.entry("src/mod_a/@alias/widgets/clock", "default = 'tick'\n")
        config = default_linker_config(project.settings())

        compile_project(config=config)
        report = compile_project(config=config)

        assert [t.name for t in config.alias_types].count("widgets") == 1
        assert project.output_src / "widgets/clock.py" not in report.written
        assert (project.src / "mod_a/@alias/widgets/clock/default.priority").is_file()
