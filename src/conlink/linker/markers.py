"""
Marker-file grammar.

A *marker file* is a sibling file whose **name** carries metadata about the
folder it sits in::

    mod_core/@alias/dataTables/users/
        index.py                 ← entry point
        high.priority            ← priority tier
        readNeedRole_admin.cond  ← condition (role requirement)
        autoProxy.disable        ← feature toggle
        3f0c...-uuid.myuid       ← stable identity
        dataTables!people.ref    ← alias of another registry key

Everything in this module is **pure**: decoders take file names and return
``Result`` values, and :func:`extract_marker_info` returns the decoded
metadata together with the list of :class:`MarkerFix` operations that would
put every marker in canonical form. Applying those fixes is a separate,
side-effecting step (:func:`conlink.linker.fs.apply_fixes`).

Manifesto:
    - **Decoding is pure:** testable against plain lists of names
    - **Canonical on disk:** ``Very-High.priority`` becomes ``very_high.priority``
      and every marker's content is its own name, so a second scan is a no-op
    - **Fail precisely:** each error names the marker file path

Canonical forms:
    ===============  ============================================
    kind             canonical file name
    ===============  ============================================
    priority         ``default|very_high|high|low|very_low.priority``
    condition        ``<normalizer output>.cond``
    feature          ``<canonical feature>.enable|.disable``
    reference        ``<target key>.ref``
    identity         ``<uuid4>.myuid``
    ===============  ============================================

Tags:
    grammar, markers, parsing, pure, conlink

Doc-Types:
    - API Reference
    - Convention Reference
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType

from conlink.core.errors import LinkerError, MarkerGrammarError, StructureError
from conlink.core.result import Err, Ok, Result
from conlink.linker.priority import PriorityLevel, priority_from_name


PRIORITY_SUFFIX = ".priority"
CONDITION_SUFFIX = ".cond"
ENABLE_SUFFIX = ".enable"
DISABLE_SUFFIX = ".disable"
REFERENCE_SUFFIX = ".ref"
IDENTITY_SUFFIX = ".myuid"
IDENTITY_PLACEHOLDER = "_" + IDENTITY_SUFFIX


# =============================================================================
# TYPES
# =============================================================================


class Policy(str, Enum):
    """Whether a marker kind may, must, or must not appear in a folder."""

    FORBIDDEN = "forbidden"
    OPTIONAL = "optional"
    REQUIRED = "required"


class FixAction(str, Enum):
    RENAME = "rename"
    WRITE = "write"
    REPLACE = "replace"


@dataclass(frozen=True)
class MarkerFix:
    """
    One filesystem change that canonicalizes a marker.

    - ``RENAME``: move ``path`` to ``target``
    - ``WRITE``: make ``path`` contain ``content`` (only if it differs)
    - ``REPLACE``: delete ``path`` and create ``target`` with ``content``
    """

    action: FixAction
    path: Path
    target: Path | None = None
    content: str | None = None

    @classmethod
    def rename(cls, path: Path, target: Path) -> "MarkerFix":
        return cls(FixAction.RENAME, path, target=target)

    @classmethod
    def write(cls, path: Path, content: str | None = None) -> "MarkerFix":
        return cls(FixAction.WRITE, path, content=path.name if content is None else content)

    @classmethod
    def replace(cls, path: Path, target: Path) -> "MarkerFix":
        return cls(FixAction.REPLACE, path, target=target, content=target.name)


@dataclass(frozen=True)
class Condition:
    """
    A canonical condition.

    ``target``/``role`` are set for access conditions (``READ`` + ``admin``)
    and feed the structured condition context of an item.
    """

    canonical: str
    target: str | None = None
    role: str | None = None


ConditionNormalizer = Callable[[str], Result[Condition]]
FeatureNormalizer = Callable[[str], "str | None"]


@dataclass(frozen=True)
class DecodedMarker:
    """Result of decoding one marker file name."""

    canonical_name: str
    level: PriorityLevel | None = None
    condition: Condition | None = None
    feature: str | None = None
    enabled: bool | None = None
    target: str | None = None


@dataclass(frozen=True)
class MarkerRules:
    """Which marker kinds a category accepts in an item folder."""

    priority: Policy = Policy.OPTIONAL
    reference: Policy = Policy.OPTIONAL
    allow_conditions: bool = True
    allow_features: bool = True


@dataclass(frozen=True)
class MarkerHooks:
    """Category-supplied normalization for conditions and features."""

    normalize_condition: ConditionNormalizer | None = None
    normalize_feature: FeatureNormalizer | None = None
    default_features: Mapping[str, bool] = field(default_factory=dict)


@dataclass(frozen=True)
class MarkerEntry:
    """A directory entry as seen by the grammar (no filesystem access)."""

    name: str
    is_file: bool = True
    is_symlink: bool = False


@dataclass(frozen=True)
class MarkerInfo:
    """Decoded marker metadata for one item folder."""

    priority: PriorityLevel | None = None
    uid: str | None = None
    ref_target: str | None = None
    conditions: frozenset[str] = frozenset()
    conditions_context: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    features: Mapping[str, bool] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(frozen=True)
class MarkerScan:
    """
    Decoded metadata plus the fixes needed to canonicalize the folder.

    ``feature_fixes`` materialize default feature values; the scanner applies
    them only for items the category accepts.
    """

    info: MarkerInfo
    fixes: tuple[MarkerFix, ...] = ()
    feature_fixes: tuple[MarkerFix, ...] = ()


# =============================================================================
# DECODERS
# =============================================================================


def compact_name(stem: str) -> str:
    """Lowercase and drop ``-`` / ``_`` separators."""
    return stem.lower().replace("-", "").replace("_", "")


def _with_path(error: Exception, path: Path) -> Exception:
    if isinstance(error, LinkerError) and error.path is None:
        error.context.path = str(path)
    return error


def decode_priority(file_name: str, path: Path | None = None) -> Result[DecodedMarker]:
    """
    Decode ``<tier>.priority``.

    >>> decode_priority("Very-High.priority").unwrap().canonical_name
    'very_high.priority'
    >>> decode_priority("urgent.priority").is_err()
    True
    """
    stem = file_name[: -len(PRIORITY_SUFFIX)]
    level = priority_from_name(stem)

    if level is None:
        return Err(
            MarkerGrammarError(
                f"Unknown priority name: {stem}",
                path=str(path) if path else None,
            )
        )

    return Ok(DecodedMarker(canonical_name=level.canonical_name + PRIORITY_SUFFIX, level=level))


def decode_condition(
    file_name: str,
    normalizer: ConditionNormalizer | None,
    path: Path | None = None,
) -> Result[DecodedMarker]:
    """Decode ``<cond>.cond`` through the category normalizer."""
    raw = compact_name(file_name[: -len(CONDITION_SUFFIX)])

    if normalizer is None:
        result: Result[Condition] = Err(MarkerGrammarError(f"Unknown condition: {raw}"))
    else:
        result = normalizer(raw)

    if path is not None:
        result = result.map_err(lambda e: _with_path(e, path))

    return result.map(
        lambda cond: DecodedMarker(canonical_name=cond.canonical + CONDITION_SUFFIX, condition=cond)
    )


def decode_feature(
    file_name: str,
    normalizer: FeatureNormalizer | None,
    path: Path | None = None,
) -> Result[DecodedMarker]:
    """
    Decode ``<feature>.enable`` / ``<feature>.disable``.

    >>> decode_feature("auto-proxy.disable", lambda n: "autoProxy" if n == "autoproxy" else None).unwrap()
    DecodedMarker(canonical_name='autoProxy.disable', level=None, condition=None, feature='autoProxy', enabled=False, target=None)
    """
    enabled = file_name.endswith(ENABLE_SUFFIX)
    suffix = ENABLE_SUFFIX if enabled else DISABLE_SUFFIX
    raw = compact_name(file_name[: -len(suffix)])

    canonical = normalizer(raw) if normalizer else None
    if not canonical:
        return Err(
            MarkerGrammarError(
                f"Unknown feature name: {raw}",
                path=str(path) if path else None,
            )
        )

    return Ok(DecodedMarker(canonical_name=canonical + suffix, feature=canonical, enabled=enabled))


def decode_reference(file_name: str) -> DecodedMarker:
    """``<target>.ref`` names another registry key verbatim."""
    return DecodedMarker(canonical_name=file_name, target=file_name[: -len(REFERENCE_SUFFIX)])


def new_uid() -> str:
    """Fresh identity token (uuid4)."""
    return str(uuid.uuid4())


def is_uid(name: str) -> bool:
    """True when ``name`` is a canonical uuid4 string."""
    try:
        parsed = uuid.UUID(name)
    except ValueError:
        return False
    return parsed.version == 4 and str(parsed) == name.lower()


# =============================================================================
# FOLDER EXTRACTION
# =============================================================================


def extract_marker_info(
    dir_path: Path,
    entries: Sequence[MarkerEntry],
    rules: MarkerRules,
    hooks: MarkerHooks | None = None,
    uid_factory: Callable[[], str] = new_uid,
) -> Result[MarkerScan]:
    """
    Decode every marker among ``entries`` of ``dir_path``.

    Entries are processed in sorted order. Names starting with ``.`` and
    symbolic links are ignored; names starting with ``_`` are ignored except
    the ``_.myuid`` identity placeholder, which yields a fresh uid.

    Returns:
        ``Ok(MarkerScan)`` or ``Err`` with the first grammar/structure error.
    """
    hooks = hooks or MarkerHooks()

    priority: PriorityLevel | None = None
    uid: str | None = None
    ref_target: str | None = None
    conditions: set[str] = set()
    context: dict[str, list[str]] = {}
    features: dict[str, bool] = {}
    fixes: list[MarkerFix] = []

    def canonicalize(path: Path, canonical_name: str) -> Path:
        target = path.with_name(canonical_name)
        if target.name != path.name:
            fixes.append(MarkerFix.rename(path, target))
        fixes.append(MarkerFix.write(target))
        return target

    for entry in sorted(entries, key=lambda e: e.name):
        if not entry.is_file or entry.is_symlink:
            continue
        if entry.name.startswith("."):
            continue

        name = entry.name
        path = dir_path / name

        if name == IDENTITY_PLACEHOLDER:
            token = uid_factory()
            name = token + IDENTITY_SUFFIX
            fixes.append(MarkerFix.replace(path, dir_path / name))
            path = dir_path / name
        elif name.startswith("_"):
            continue

        if name.endswith(IDENTITY_SUFFIX):
            if uid is not None:
                return Err(MarkerGrammarError("More than one .myuid file found here", path=str(path)))
            uid = name[: -len(IDENTITY_SUFFIX)]
            fixes.append(MarkerFix.write(path))

        elif name.endswith(PRIORITY_SUFFIX):
            if priority is not None:
                return Err(MarkerGrammarError("More than one .priority file found here", path=str(path)))
            if rules.priority is Policy.FORBIDDEN:
                return Err(MarkerGrammarError("A .priority file is NOT expected here", path=str(path)))

            decoded = decode_priority(name, path)
            if decoded.is_err():
                return decoded
            marker = decoded.unwrap()
            priority = marker.level
            canonicalize(path, marker.canonical_name)

        elif name.endswith(CONDITION_SUFFIX):
            if not rules.allow_conditions:
                return Err(MarkerGrammarError("A .cond file is NOT expected here", path=str(path)))

            decoded = decode_condition(name, hooks.normalize_condition, path)
            if decoded.is_err():
                return decoded
            marker = decoded.unwrap()
            cond = marker.condition
            conditions.add(cond.canonical)
            if cond.target is not None and cond.role is not None:
                context.setdefault(cond.target, []).append(cond.role)
            canonicalize(path, marker.canonical_name)

        elif name.endswith(REFERENCE_SUFFIX):
            if ref_target is not None:
                return Err(MarkerGrammarError("More than one .ref file found here", path=str(path)))
            if rules.reference is Policy.FORBIDDEN:
                return Err(MarkerGrammarError("A .ref file is NOT expected here", path=str(path)))

            ref_target = decode_reference(name).target
            fixes.append(MarkerFix.write(path))

        elif name.endswith(ENABLE_SUFFIX) or name.endswith(DISABLE_SUFFIX):
            if not rules.allow_features:
                suffix = ENABLE_SUFFIX if name.endswith(ENABLE_SUFFIX) else DISABLE_SUFFIX
                return Err(MarkerGrammarError(f"A {suffix} file is NOT expected here", path=str(path)))

            decoded = decode_feature(name, hooks.normalize_feature, path)
            if decoded.is_err():
                return decoded
            marker = decoded.unwrap()
            if marker.feature in features and features[marker.feature] != marker.enabled:
                return Err(
                    MarkerGrammarError(
                        f"Conflicting .enable/.disable markers for feature {marker.feature}",
                        path=str(path),
                    )
                )
            features[marker.feature] = marker.enabled
            canonicalize(path, marker.canonical_name)

    if priority is None and rules.priority is Policy.REQUIRED:
        fixes.append(MarkerFix.write(dir_path / ("default" + PRIORITY_SUFFIX)))

    if ref_target is None and rules.reference is Policy.REQUIRED:
        return Err(StructureError("A .ref file is required here", path=str(dir_path)))

    feature_fixes: list[MarkerFix] = []
    for feature_name, default in hooks.default_features.items():
        if feature_name not in features:
            features[feature_name] = default
            suffix = ENABLE_SUFFIX if default else DISABLE_SUFFIX
            feature_fixes.append(MarkerFix.write(dir_path / (feature_name + suffix)))

    info = MarkerInfo(
        priority=priority,
        uid=uid,
        ref_target=ref_target,
        conditions=frozenset(conditions),
        conditions_context=MappingProxyType({k: tuple(v) for k, v in sorted(context.items())}),
        features=MappingProxyType(dict(sorted(features.items()))),
    )

    return Ok(MarkerScan(info=info, fixes=tuple(fixes), feature_fixes=tuple(feature_fixes)))


__all__ = [
    "Policy",
    "FixAction",
    "MarkerFix",
    "Condition",
    "ConditionNormalizer",
    "FeatureNormalizer",
    "DecodedMarker",
    "MarkerRules",
    "MarkerHooks",
    "MarkerEntry",
    "MarkerInfo",
    "MarkerScan",
    "compact_name",
    "decode_priority",
    "decode_condition",
    "decode_feature",
    "decode_reference",
    "new_uid",
    "is_uid",
    "extract_marker_info",
]
