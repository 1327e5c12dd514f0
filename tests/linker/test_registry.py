"""
Tests for conlink.linker.registry: priority arbitration and lookups.
"""

from pathlib import Path

import pytest

from conlink.core.errors import LinkerError, ReferenceTargetError, StructureError, TypeMismatchError
from conlink.linker.priority import PriorityLevel
from conlink.linker.registry import DeclarationRecord, Registry, make_key, split_key


def record(path: str, priority: PriorityLevel = PriorityLevel.DEFAULT, category: str = "chunks", **kw) -> DeclarationRecord:
    return DeclarationRecord(category=category, path=Path(path), priority=priority, **kw)


class TestKeys:
    def test_single_key(self):
        assert make_key("chunks", "logo") == "chunks!logo"
        assert split_key("chunks!logo") == ("chunks", None, "logo")

    def test_grouped_key(self):
        key = make_key("events", "notify", group="app.ready")
        assert key == "events:app.ready!notify"
        assert split_key(key) == ("events", "app.ready", "notify")


class TestConflicts:
    @pytest.mark.parametrize("order", ["high_first", "low_first"])
    def test_high_beats_low_in_either_order(self, order):
        high = record("/a", PriorityLevel.HIGH)
        low = record("/b", PriorityLevel.LOW)
        registry = Registry()

        for rec in ([high, low] if order == "high_first" else [low, high]):
            registry.add("chunks!logo", rec)

        assert registry.require("chunks!logo").unwrap() is high

    def test_tie_keeps_first(self):
        registry = Registry()
        first = record("/a")
        assert registry.add("chunks!logo", first) is True
        assert registry.add("chunks!logo", record("/b")) is False
        assert registry.require("chunks!logo").unwrap() is first

    def test_tie_is_fatal_when_strict(self):
        registry = Registry(strict_conflicts=True)
        registry.add("chunks!logo", record("/a"))

        with pytest.raises(StructureError) as exc_info:
            registry.add("chunks!logo", record("/b"))
        assert exc_info.value.path == "/b"
        assert exc_info.value.context.key == "chunks!logo"

    def test_lower_discarded_even_when_strict(self):
        registry = Registry(strict_conflicts=True)
        registry.add("chunks!logo", record("/a", PriorityLevel.HIGH))
        assert registry.add("chunks!logo", record("/b", PriorityLevel.LOW)) is False

    def test_frozen_registry_rejects_add(self):
        registry = Registry()
        registry.freeze()
        with pytest.raises(LinkerError, match="read-only"):
            registry.add("chunks!logo", record("/a"))


class TestLookups:
    def test_get_missing_is_ok_none(self):
        assert Registry().get("chunks!nope").unwrap() is None

    def test_require_missing_is_err(self):
        result = Registry().require("chunks!nope")
        assert isinstance(result.error, ReferenceTargetError)
        assert result.error.context.key == "chunks!nope"

    def test_category_mismatch(self):
        registry = Registry()
        registry.add("chunks!logo", record("/a"))

        result = registry.get("chunks!logo", expected_category="events")
        assert isinstance(result.error, TypeMismatchError)
        assert result.error.expected == "events"
        assert result.error.actual == "chunks"

    def test_items_sorted_and_filtered(self):
        registry = Registry()
        registry.add("chunks!b", record("/b"))
        registry.add("events:x!a", record("/e", category="events"))
        registry.add("chunks!a", record("/a"))

        assert [k for k, _ in registry.items("chunks")] == ["chunks!a", "chunks!b"]
        assert list(registry) == ["chunks!a", "chunks!b", "events:x!a"]
        assert len(registry) == 3
        assert "chunks!a" in registry


class _Ref:
    def __init__(self, ref_target):
        self.ref_target = ref_target


class TestResolveEntryPoint:
    def test_follows_references(self):
        registry = Registry()
        registry.add("chunks!real", record("/real", entry_point=Path("/real/index.py")))
        registry.add("lists:g!alias", record("/alias", category="lists", payload=_Ref("chunks!real")))

        assert registry.resolve_entry_point("lists:g!alias").unwrap() == Path("/real/index.py")

    def test_cycle_is_err(self):
        registry = Registry()
        registry.add("a!x", record("/x", category="a", payload=_Ref("a!y")))
        registry.add("a!y", record("/y", category="a", payload=_Ref("a!x")))

        result = registry.resolve_entry_point("a!x")
        assert result.is_err()
        assert "cycle" in result.error.message

    def test_expected_category_checked(self):
        registry = Registry()
        registry.add("chunks!real", record("/real", entry_point=Path("/real/index.py")))
        assert isinstance(registry.resolve_entry_point("chunks!real", "events").error, TypeMismatchError)
