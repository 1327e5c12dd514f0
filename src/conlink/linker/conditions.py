"""
Need-role condition grammar.

A condition file ``<target>NeedRole_<role>.cond`` restricts an item to users
holding ``role`` for the access ``target``. After separator stripping the
decoder sees ``readneedroleadmin``; the normalizer splits it on the
``needrole`` keyword and checks the target against the category's list.

Examples:
    >>> normalize = need_role_normalizer(["read", "write"])
    >>> normalize("readneedroleadmin").unwrap()
    Condition(canonical='readNeedRole_admin', target='READ', role='admin')
    >>> normalize("deleteneedroleadmin").is_err()
    True
"""

from __future__ import annotations

from collections.abc import Iterable

from conlink.core.errors import MarkerGrammarError
from conlink.core.result import Err, Ok, Result
from conlink.linker.markers import Condition, ConditionNormalizer

NEED_ROLE = "needrole"


def need_role_normalizer(targets: Iterable[str]) -> ConditionNormalizer:
    """Build a normalizer accepting ``<target>needrole<role>`` for ``targets``."""
    allowed = {t.lower() for t in targets}

    def normalize(raw: str) -> Result[Condition]:
        target, sep, role = raw.partition(NEED_ROLE)

        if not sep:
            return Err(MarkerGrammarError(f"Unknown condition: {raw}"))
        if target not in allowed:
            return Err(MarkerGrammarError(f"Condition target {target or '<empty>'} is unknown"))
        if not role:
            return Err(MarkerGrammarError(f"Condition {raw} names no role"))

        return Ok(
            Condition(
                canonical=f"{target}NeedRole_{role}",
                target=target.upper(),
                role=role,
            )
        )

    return normalize


def reject_conditions(raw: str) -> Result[Condition]:
    """Normalizer for categories that accept no condition at all."""
    return Err(MarkerGrammarError(f"Unknown condition: {raw}"))


__all__ = ["NEED_ROLE", "need_role_normalizer", "reject_conditions"]
