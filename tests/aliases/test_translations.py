"""
Tests for conlink.aliases.translations: templates, merging, generated accessors.
"""

import json
from pathlib import Path

import pytest

from conlink.aliases.translations import (
    Segment,
    TranslationGroup,
    fill_from_default,
    group_messages,
    is_valid_key,
    merge_groups,
    parse_template,
    read_language_file,
)
from conlink.core.errors import StructureError
from conlink.linker.engine import compile_project
from conlink.linker.priority import PriorityLevel
from conlink.runtime import load_module


class TestParseTemplate:
    def test_placeholder_at_start(self):
        assert parse_template("%(n) items") == (Segment("n", placeholder=True), Segment(" items"))

    def test_mixed(self):
        assert parse_template("Hello %(name), you have %(n)") == (
            Segment("Hello "),
            Segment("name", placeholder=True),
            Segment(", you have "),
            Segment("n", placeholder=True),
        )

    def test_unterminated_stays_literal(self):
        assert parse_template("50%( off") == (Segment("50"), Segment("%( off"))

    def test_plain_text(self):
        assert parse_template("Cart") == (Segment("Cart"),)


class TestMessages:
    def test_plural_pairing(self):
        (message,) = group_messages({"items": "%(n) item", "*items": "%(n) items"})
        assert message.key == "items"
        assert message.has_data
        assert message.params == ["n"]

    def test_lone_plural_serves_as_singular(self):
        (message,) = group_messages({"*apples": "apples"})
        assert message.single == message.plural

    @pytest.mark.parametrize("key, valid", [("title", True), ("*title", True), ("class", False), ("with space", False), ("1st", False)])
    def test_key_validity(self, key, valid):
        assert is_valid_key(key) is valid


class TestReadLanguageFile:
    def test_invalid_entries_skipped(self, tmp_path):
        path = tmp_path / "en.json"
        path.write_text(json.dumps({"ok": "fine", "bad key": "x", "count": 3}))
        assert read_language_file(path) == {"ok": "fine"}

    def test_bad_json_is_fatal(self, tmp_path):
        path = tmp_path / "en.json"
        path.write_text("{oops")
        with pytest.raises(StructureError) as exc_info:
            read_language_file(path)
        assert exc_info.value.path == str(path)

    def test_non_object_is_fatal(self, tmp_path):
        path = tmp_path / "en.json"
        path.write_text("[]")
        with pytest.raises(StructureError, match="JSON object"):
            read_language_file(path)


def group(priority, default_lang, **languages) -> TranslationGroup:
    return TranslationGroup(
        name="cart",
        path=Path("/cart"),
        priority=priority,
        default_lang=default_lang,
        languages={lang: dict(values) for lang, values in languages.items()},
    )


class TestMerge:
    def test_higher_priority_is_master(self):
        low = group(PriorityLevel.DEFAULT, "en", en={"title": "Cart", "empty": "Empty"})
        high = group(PriorityLevel.HIGH, "fr", en={"title": "Basket"}, fr={"title": "Panier"})

        merged = merge_groups(low, high)

        assert merged is high
        assert merged.default_lang == "fr"
        assert merged.languages["en"] == {"title": "Basket", "empty": "Empty"}

    def test_tie_keeps_current_master(self):
        first = group(PriorityLevel.DEFAULT, "en", en={"title": "First"})
        second = group(PriorityLevel.DEFAULT, "de", en={"title": "Second"}, de={"title": "Zweite"})

        merged = merge_groups(first, second)
        assert merged is first
        assert merged.languages["en"]["title"] == "First"
        assert merged.languages["de"] == {"title": "Zweite"}

    def test_fill_from_default(self):
        g = group(PriorityLevel.DEFAULT, "en", en={"title": "Cart", "empty": "Empty"}, fr={"title": "Panier"})
        fill_from_default(g)
        assert g.languages["fr"] == {"title": "Panier", "empty": "Empty"}


def write_lang(project, module: str, lang: str, values: dict) -> None:
    project.file(f"src/{module}/@alias/translations/cart/{lang}.json", json.dumps(values))


class TestGeneratedTranslations:
    @pytest.fixture
    def cart(self, project):
        write_lang(project, "mod_a", "en", {"title": "Cart", "items": "%(n) item", "*items": "%(n) items", "hello": "Hi %(name)"})
        write_lang(project, "mod_a", "fr", {"title": "Panier"})
        compile_project(project.settings())
        return project.output_src / "translations/cart"

    def test_plural_by_count(self, cart):
        en = load_module(cart / "en.py").default
        assert en.items_plural(1, {"n": 1}) == "1 item"
        assert en.items_plural(5, {"n": 5}) == "5 items"
        assert en.items({"n": 2}) == "2 item"
        assert en.hello({"name": "Ada"}) == "Hi Ada"
        assert en.lang == "en"

    def test_missing_key_borrowed_from_default(self, cart):
        fr = load_module(cart / "fr.py").default
        assert fr.title() == "Panier"
        assert fr.items_plural(3, {"n": 3}) == "3 items"

    def test_index_falls_back_to_default(self, cart):
        index = load_module(cart / "index.py")
        assert index.languages == ("en", "fr")
        assert index.get("FR").title() == "Panier"
        assert index.get("de").title() == "Cart"
        assert load_module(cart / "default.py").lang == "en"

    def test_annotated_tree_declares_params(self, cart, project):
        source = (cart / "en.py").read_text()
        runtime = (project.output_dist / "translations/cart/en.py").read_text()
        assert "TypedDict('I1'" in source
        assert "TypedDict" not in runtime

    def test_priority_materialized(self, cart, project):
        assert (project.src / "mod_a/@alias/translations/cart/default.priority").is_file()

    def test_explicit_default_language(self, project):
        write_lang(project, "mod_a", "en", {"title": "Cart"})
        write_lang(project, "mod_a", "de", {"title": "Korb"})
        project.file("src/mod_a/@alias/translations/cart/de.default")
        compile_project(project.settings())

        index = load_module(project.output_src / "translations/cart/index.py")
        assert index.get("xx").title() == "Korb"

    def test_unknown_default_language(self, project):
        write_lang(project, "mod_a", "en", {"title": "Cart"})
        project.file("src/mod_a/@alias/translations/cart/it.default")
        with pytest.raises(StructureError, match="it.json"):
            compile_project(project.settings())

    def test_merged_across_modules(self, project):
        write_lang(project, "mod_a", "en", {"title": "Cart", "empty": "Nothing here"})
        write_lang(project, "mod_b", "en", {"title": "Basket"})
        project.file("src/mod_b/@alias/translations/cart/high.priority")
        compile_project(project.settings())

        en = load_module(project.output_src / "translations/cart/en.py").default
        assert en.title() == "Basket"
        assert en.empty() == "Nothing here"
