"""
Tests for conlink.aliases.events (shared and server-only) and the StaticEvent runtime.
"""

import asyncio

from conlink.aliases.events import TypeEvents
from conlink.linker.defaults import default_linker_config
from conlink.linker.engine import compile_project
from conlink.runtime import StaticEvent, load_install, load_module


def test_static_event_send_in_order():
    calls = []
    event = StaticEvent("app.ready", [lambda x: calls.append(("one", x)) or 1])
    event.add_listener(lambda x: calls.append(("two", x)) or 2)

    assert event.send("go") == [1, 2]
    assert calls == [("one", "go"), ("two", "go")]
    assert len(event) == 2
    assert repr(event) == "StaticEvent('app.ready', listeners=2)"


def test_add_static_event_deduplicates():
    events = TypeEvents()
    events.add_static_event("app.start")
    events.add_static_event("app.start")
    assert events.static_events == ("app.start",)


class TestGeneratedEvents:
    def test_event_module(self, project):
        project.entry("src/mod_a/@alias/events/cart.changed/audit", "def default(cart):\n    return ('audit', cart)\n")
        compile_project(project.settings())

        module = load_module(project.output_src / "events/cart.changed.py")
        assert module.default is module.event
        assert module.listeners == module.items
        assert module.event.send(7) == [("audit", 7)]

    def test_static_event_without_members(self, project):
        config = default_linker_config(project.settings())
        config.get_type("events").add_static_event("app.idle")
        compile_project(config=config)

        module = load_module(project.output_src / "events/app.idle.py")
        assert len(module.event) == 0

    def test_providers_registered_in_both_installs(self, project, host_registry):
        project.entry("src/mod_a/@alias/events/a.evt/x", "def default():\n    return 'x'\n")
        project.entry("src/mod_a/@alias/events/b.evt/y", "def default():\n    return 'y'\n")
        compile_project(project.settings())

        asyncio.run(load_install(project.output_src, "server")(host_registry))
        load_install(project.output_src, "client")(host_registry)

        names = [name for name, _ in host_registry.calls["providers"]]
        assert names == ["a.evt", "b.evt", "a.evt", "b.evt"]
        provider = host_registry.calls["providers"][1][1]
        assert provider().send() == ["y"]

    def test_stub_next_to_runtime_module(self, project):
        project.entry("src/mod_a/@alias/events/a.evt/x")
        compile_project(project.settings())

        stub = (project.output_dist / "events/a.evt.pyi").read_text()
        assert "event: StaticEvent" in stub


class TestServerEvents:
    def test_registered_in_server_install_only(self, project, host_registry):
        project.entry("src/mod_a/@alias/serverEvents/user.created/mailer", "def default(user):\n    return ('mail', user)\n")
        compile_project(project.settings())

        load_install(project.output_src, "client")(host_registry)
        assert host_registry.calls["providers"] == []

        asyncio.run(load_install(project.output_src, "server")(host_registry))
        ((name, provider),) = host_registry.calls["providers"]
        assert name == "user.created"
        assert provider().send("ada") == [("mail", "ada")]

    def test_kept_apart_from_shared_events(self, project):
        project.entry("src/mod_a/@alias/events/user.created/ui", "default = 'ui'\n")
        project.entry("src/mod_a/@alias/serverEvents/user.created/db", "default = 'db'\n")
        compile_project(project.settings())

        assert load_module(project.output_src / "events/user.created.py").items == ["ui"]
        assert load_module(project.output_src / "serverEvents/user.created.py").items == ["db"]

    def test_static_server_event(self, project):
        config = default_linker_config(project.settings())
        config.get_type("serverEvents").add_static_event("server.stopping")
        compile_project(config=config)

        assert not (project.output_src / "events/server.stopping.py").exists()
        assert len(load_module(project.output_src / "serverEvents/server.stopping.py").event) == 0
