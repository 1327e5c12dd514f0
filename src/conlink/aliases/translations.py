"""
Translations.

Layout::

    mod_core/@alias/translations/cart/
        en-us.json      {"title": "Cart", "items": "%(count) item", "*items": "%(count) items"}
        fr-fr.json
        fr-fr.default   (optional: names the default language)
        high.priority   (materialized as default.priority if absent)

A key prefixed with ``*`` is the plural variant of the same key. Templates
use ``%(identifier)`` placeholders filled from a data mapping.

Groups with the same name coming from several modules are merged key by key
and language by language: the higher priority contribution is the master
(its default language wins), the others backfill what it lacks. Languages
missing a key then borrow it from the default language.

Generated per group (``translations/<group>/``):

    ==============  =====================================================
    file            content
    ==============  =====================================================
    ``<lang>.py``   ``Messages`` class, one method per key, ``default``
    ``default.py``  forwards to the default language module
    ``index.py``    ``get(lang)`` with fallback to the default language
    ==============  =====================================================

Examples:
    >>> parse_template("%(n) items in %(cart)")
    (Segment(text='n', placeholder=True), Segment(text=' items in ', placeholder=False), Segment(text='cart', placeholder=True))
    >>> m = load_entry(__file__, "translations/cart/en-us.py")
    >>> m.items_plural(5, {"count": 5})
    '5 items'

Tags:
    translations, i18n, plural, codegen, conlink

Doc-Types:
    - API Reference
    - Convention Reference
"""

from __future__ import annotations

import json
import keyword
from dataclasses import dataclass, field
from pathlib import Path

from conlink.core.errors import StructureError
from conlink.core.logging import get_logger
from conlink.linker.alias_type import AliasType, DiscoverContext
from conlink.linker.fs import list_entries
from conlink.linker.markers import MarkerRules, Policy
from conlink.linker.priority import PriorityLevel
from conlink.linker.registry import DeclarationRecord, make_key
from conlink.linker.writer import CodeGenWriter, OutputTree

logger = get_logger(__name__)

PLURAL_PREFIX = "*"
LANG_SUFFIX = ".json"
DEFAULT_SUFFIX = ".default"

GROUP_MARKERS = MarkerRules(
    priority=Policy.REQUIRED,
    reference=Policy.FORBIDDEN,
    allow_conditions=False,
    allow_features=False,
)


# =============================================================================
# TEMPLATES
# =============================================================================


@dataclass(frozen=True)
class Segment:
    """A literal text run, or a placeholder whose ``text`` is its identifier."""

    text: str
    placeholder: bool = False


def parse_template(value: str) -> tuple[Segment, ...]:
    """
    Split a template into literal and placeholder segments, left to right.

    An unterminated ``%(`` is kept as literal text.
    """
    segments: list[Segment] = []
    rest = value

    while rest:
        start = rest.find("%(")
        if start == -1:
            segments.append(Segment(rest))
            break

        if start > 0:
            segments.append(Segment(rest[:start]))

        end = rest.find(")", start + 2)
        if end == -1:
            segments.append(Segment(rest[start:]))
            break

        segments.append(Segment(rest[start + 2 : end], placeholder=True))
        rest = rest[end + 1 :]

    return tuple(segments)


@dataclass
class Message:
    """Singular and optional plural templates of one key."""

    key: str
    single: tuple[Segment, ...] | None = None
    plural: tuple[Segment, ...] | None = None

    @property
    def has_data(self) -> bool:
        return any(s.placeholder for s in (self.single or ()) + (self.plural or ()))

    @property
    def params(self) -> list[str]:
        """Placeholder identifiers, in order of first appearance."""
        seen: list[str] = []
        for segment in (self.single or ()) + (self.plural or ()):
            if segment.placeholder and segment.text not in seen:
                seen.append(segment.text)
        return seen


def group_messages(definitions: dict[str, str]) -> list[Message]:
    """Pair ``key`` / ``*key`` entries. A lone plural also serves as singular."""
    messages: dict[str, Message] = {}

    for raw_key, value in definitions.items():
        is_plural = raw_key.startswith(PLURAL_PREFIX)
        key = raw_key[1:] if is_plural else raw_key
        message = messages.setdefault(key, Message(key))
        if is_plural:
            message.plural = parse_template(value)
        else:
            message.single = parse_template(value)

    for message in messages.values():
        if message.single is None:
            message.single = message.plural

    return list(messages.values())


def is_valid_key(raw_key: str) -> bool:
    key = raw_key[1:] if raw_key.startswith(PLURAL_PREFIX) else raw_key
    return key.isidentifier() and not keyword.iskeyword(key)


# =============================================================================
# DISCOVERY
# =============================================================================


@dataclass
class TranslationGroup:
    name: str
    path: Path
    priority: PriorityLevel = PriorityLevel.DEFAULT
    default_lang: str | None = None
    languages: dict[str, dict[str, str]] = field(default_factory=dict)
    module: str | None = None


def read_language_file(path: Path) -> dict[str, str]:
    """Load one ``<lang>.json`` file, dropping invalid keys and values."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise StructureError(f"Can't read translation file: {e}", path=str(path), cause=e) from e

    if not isinstance(data, dict):
        raise StructureError("A translation file must hold a JSON object", path=str(path))

    result: dict[str, str] = {}
    for key, value in data.items():
        if not is_valid_key(key):
            logger.warning("translation_key_invalid", path=str(path), key=key)
            continue
        if not isinstance(value, str):
            logger.warning("translation_value_invalid", path=str(path), key=key)
            continue
        result[key] = value
    return result


def merge_groups(current: TranslationGroup, incoming: TranslationGroup) -> TranslationGroup:
    """
    Merge two contributions of the same group.

    The strictly higher priority one becomes the master; on a tie the
    current one stays master. The other one only fills what is missing.
    """
    master, aux = current, incoming
    if incoming.priority > current.priority:
        master, aux = incoming, current

    if master.default_lang is None:
        master.default_lang = aux.default_lang

    for lang, aux_definitions in aux.languages.items():
        master_definitions = master.languages.get(lang)
        if master_definitions is None:
            master.languages[lang] = dict(aux_definitions)
            continue

        for key, value in aux_definitions.items():
            if key not in master_definitions:
                master_definitions[key] = value
                logger.debug("translation_key_merged", group=master.name, lang=lang, key=key)

    return master


def fill_from_default(group: TranslationGroup) -> None:
    """Give every language the keys it lacks from the default language."""
    defaults = group.languages[group.default_lang]

    for lang, definitions in group.languages.items():
        if definitions is defaults:
            continue
        for key, value in defaults.items():
            if key not in definitions:
                definitions[key] = value


class TypeTranslation(AliasType):
    name = "translations"

    def __init__(self, name: str | None = None):
        super().__init__(name)
        self._groups: dict[str, TranslationGroup] = {}

    def reset(self) -> None:
        self._groups = {}

    @property
    def groups(self) -> dict[str, TranslationGroup]:
        return self._groups

    def discover(self, ctx: DiscoverContext, type_dir: Path) -> None:
        for entry in list_entries(type_dir):
            if not entry.is_dir or entry.name.startswith((".", "_")):
                continue
            group = self.read_group(ctx, entry.path)
            current = self._groups.get(group.name)
            self._groups[group.name] = group if current is None else merge_groups(current, group)

    def read_group(self, ctx: DiscoverContext, group_dir: Path) -> TranslationGroup:
        info = ctx.scanner.read_markers(group_dir, GROUP_MARKERS).info

        default_lang: str | None = None
        languages: dict[str, dict[str, str]] = {}

        for entry in list_entries(group_dir):
            if not entry.is_file or entry.name.startswith((".", "_")):
                continue
            if entry.name.endswith(DEFAULT_SUFFIX):
                default_lang = entry.name[: -len(DEFAULT_SUFFIX)].lower()
            elif entry.name.endswith(LANG_SUFFIX):
                languages[entry.name[: -len(LANG_SUFFIX)].lower()] = read_language_file(entry.path)

        if not languages:
            raise StructureError("A translation group needs at least one <lang>.json file", path=str(group_dir))

        if default_lang is None:
            conventional = ctx.settings.default_language.lower()
            default_lang = conventional if conventional in languages else next(iter(languages))
        elif default_lang not in languages:
            raise StructureError(
                f"The default language {default_lang} has no {default_lang}{LANG_SUFFIX} file",
                path=str(group_dir),
            )

        return TranslationGroup(
            name=group_dir.name,
            path=group_dir,
            priority=info.priority if info.priority is not None else PriorityLevel.DEFAULT,
            default_lang=default_lang,
            languages=languages,
            module=ctx.module_name,
        )

    def finish_discovery(self, ctx: DiscoverContext) -> None:
        for name in sorted(self._groups):
            group = self._groups[name]
            ctx.add(
                make_key(self.name, name),
                DeclarationRecord(
                    category=self.name,
                    path=group.path,
                    priority=group.priority,
                    payload=group,
                    module=group.module,
                ),
            )

    # ── Emission ─────────────────────────────────────────────────

    def begin_emission(self, writer: CodeGenWriter) -> None:
        for group in self._groups.values():
            fill_from_default(group)

    def emit_item(self, writer: CodeGenWriter, key: str, record: DeclarationRecord) -> None:
        group: TranslationGroup = record.payload
        base = f"{self.name}/{group.name}"
        languages = sorted(group.languages)

        for lang in languages:
            messages = group_messages(group.languages[lang])
            writer.emit(f"{base}/{lang}.py", lambda tree: render_language(tree, lang, messages))

        writer.emit(
            f"{base}/default.py",
            lambda tree: render_default(tree, group.default_lang),
            stub="from typing import Any\n\nlang: str\ndefault: Any\n",
        )
        writer.emit(
            f"{base}/index.py",
            lambda tree: render_index(tree, languages),
            stub=(
                "from typing import Any\n\n"
                "languages: tuple[str, ...]\n"
                "default: Any\n\n"
                "def get(lang: str) -> Any: ...\n"
            ),
        )


# =============================================================================
# RENDERING
# =============================================================================


def _concat(segments: tuple[Segment, ...]) -> str:
    parts = [f"str(data[{s.text!r}])" if s.placeholder else repr(s.text) for s in segments]
    return " + ".join(parts) if parts else "''"


def _literal(segments: tuple[Segment, ...]) -> str:
    return repr("".join(s.text for s in segments))


def render_language(tree: OutputTree, lang: str, messages: list[Message]) -> str:
    """``Messages`` accessor for one language; helper counters restart per file."""
    header: list[str] = []
    methods: list[str] = []
    uses_typed_dict = False
    counter = 0

    for message in messages:
        key = message.key

        if message.has_data:
            counter += 1
            fs, fp, params_type = f"fs_{counter}", f"fp_{counter}", f"I{counter}"

            if tree.annotated:
                uses_typed_dict = True
                fields = ", ".join(f"{p!r}: str | int" for p in message.params)
                header.append(f"{params_type} = TypedDict({params_type!r}, {{{fields}}})\n")
                data_arg = f"data: {params_type}"
                returns = " -> str"
            else:
                data_arg = "data"
                returns = ""

            header.append(f"def {fs}({data_arg}){returns}:\n    return {_concat(message.single)}\n")
            methods.append(f"    def {key}(self, {data_arg}){returns}:\n        return {fs}(data)\n")

            if message.plural is not None:
                header.append(f"def {fp}({data_arg}){returns}:\n    return {_concat(message.plural)}\n")
                count_arg = "count: int" if tree.annotated else "count"
                methods.append(
                    f"    def {key}_plural(self, {count_arg}, {data_arg}){returns}:\n"
                    f"        if count > 1:\n"
                    f"            return {fp}(data)\n"
                    f"        return {fs}(data)\n"
                )
        else:
            returns = " -> str" if tree.annotated else ""
            methods.append(f"    def {key}(self){returns}:\n        return {_literal(message.single)}\n")

            if message.plural is not None:
                count_arg = "count: int" if tree.annotated else "count"
                methods.append(
                    f"    def {key}_plural(self, {count_arg}){returns}:\n"
                    f"        if count > 1:\n"
                    f"            return {_literal(message.plural)}\n"
                    f"        return {_literal(message.single)}\n"
                )

    lines: list[str] = []
    if uses_typed_dict:
        lines.append("from typing import TypedDict\n\n")
    lines.append(f"lang = {lang!r}\n\n")

    for block in header:
        lines.append(f"\n{block}\n")

    lines.append("\nclass Messages:\n")
    lines.append("    lang = lang\n")
    for method in methods:
        lines.append(f"\n{method}")

    lines.append("\n\ndefault = Messages()\n")
    return "".join(lines)


def render_default(tree: OutputTree, default_lang: str) -> str:
    return (
        "from conlink.runtime import load_entry\n\n"
        f"lang = {default_lang!r}\n"
        f"default = load_entry(__file__, {default_lang + '.py'!r})\n"
    )


def render_index(tree: OutputTree, languages: list[str]) -> str:
    lines = ["from conlink.runtime import load_entry\n\n", "_by_lang = {\n"]
    for lang in languages:
        lines.append(f"    {lang!r}: load_entry(__file__, {lang + '.py'!r}),\n")
    lines.append("}\n\n")
    lines.append("default = load_entry(__file__, 'default.py')\n")
    lines.append("languages = tuple(_by_lang)\n\n\n")

    if tree.annotated:
        lines.append("def get(lang: str) -> object:\n")
    else:
        lines.append("def get(lang):\n")
    lines.append("    return _by_lang.get(lang.lower(), default)\n")
    return "".join(lines)


__all__ = [
    "Segment",
    "Message",
    "TranslationGroup",
    "TypeTranslation",
    "parse_template",
    "group_messages",
    "is_valid_key",
    "read_language_file",
    "merge_groups",
    "fill_from_default",
    "render_language",
    "render_default",
    "render_index",
]
