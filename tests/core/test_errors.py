"""
Tests for conlink.core.errors and conlink.core.result.
"""

import json

import pytest

from conlink.core.errors import (
    ErrorCategory,
    LinkerConfigError,
    LinkerError,
    LinkerIOError,
    MarkerGrammarError,
    ReferenceTargetError,
    StructureError,
    TypeMismatchError,
    categorize_error,
)
from conlink.core.result import Err, Ok, collect_results, from_optional


class TestLinkerError:
    @pytest.mark.parametrize(
        "cls, category",
        [
            (MarkerGrammarError, ErrorCategory.GRAMMAR),
            (StructureError, ErrorCategory.STRUCTURE),
            (ReferenceTargetError, ErrorCategory.REFERENCE),
            (LinkerConfigError, ErrorCategory.CONFIG),
            (LinkerIOError, ErrorCategory.IO),
            (LinkerError, ErrorCategory.INTERNAL),
        ],
    )
    def test_default_categories(self, cls, category):
        assert cls("boom").category is category

    def test_path_travels_in_context(self):
        error = StructureError("No entry point", path="/p/mod_a/@alias/chunks/x")
        assert error.path == "/p/mod_a/@alias/chunks/x"
        assert str(error) == "No entry point"

    def test_with_context_is_fluent(self):
        error = MarkerGrammarError("bad").with_context(module="mod_a", key="chunks!x", line=3)
        assert error.context.module == "mod_a"
        assert error.context.key == "chunks!x"
        assert error.context.metadata == {"line": 3}

    def test_to_dict_is_json_serializable(self):
        cause = ValueError("inner")
        error = LinkerIOError("write failed", path="/out/a.py", cause=cause)
        data = error.to_dict()

        assert data["error_type"] == "LinkerIOError"
        assert data["category"] == "IO"
        assert data["context"] == {"path": "/out/a.py"}
        assert data["cause"] == "inner"
        assert error.__cause__ is cause
        json.dumps(data)

    def test_type_mismatch_is_reference_error(self):
        error = TypeMismatchError("chunks!logo", "events", "chunks")
        assert isinstance(error, ReferenceTargetError)
        assert error.category is ErrorCategory.REFERENCE
        assert "@events" in error.message and "@chunks" in error.message

    def test_categorize_error(self):
        assert categorize_error(StructureError("x")) is ErrorCategory.STRUCTURE
        assert categorize_error(FileNotFoundError()) is ErrorCategory.IO
        assert categorize_error(KeyError()) is ErrorCategory.INTERNAL


class TestResult:
    def test_ok(self):
        result = Ok(2)
        assert result.is_ok() and not result.is_err()
        assert result.map(lambda v: v * 3).unwrap() == 6
        assert result.flat_map(lambda v: Ok(v + 1)).unwrap() == 3
        assert result.to_dict() == {"ok": True, "value": 2}

    def test_err_unwrap_raises_carried_error(self):
        error = MarkerGrammarError("Unknown priority name: urgent")
        with pytest.raises(MarkerGrammarError) as exc_info:
            Err(error).unwrap()
        assert exc_info.value is error

    def test_err_is_sticky(self):
        result = Err(ValueError("x"))
        assert result.map(lambda v: v + 1).is_err()
        assert result.unwrap_or(5) == 5
        assert result.map_err(lambda e: StructureError(str(e))).error.category is ErrorCategory.STRUCTURE

    def test_err_to_dict(self):
        assert Err(StructureError("bad")).to_dict()["error"]["category"] == "STRUCTURE"
        assert Err(KeyError("k")).to_dict()["error"]["error_type"] == "KeyError"

    def test_collect_results_fail_fast(self):
        assert collect_results([Ok(1), Ok(2)]).unwrap() == [1, 2]
        first = ValueError("first")
        assert collect_results([Ok(1), Err(first), Err(ValueError("second"))]).error is first

    def test_from_optional(self):
        assert from_optional(1, ValueError()).unwrap() == 1
        assert from_optional(None, ValueError("none")).is_err()
