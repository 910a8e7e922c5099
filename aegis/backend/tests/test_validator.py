"""
tests/test_validator.py

Tests for enrichment/validator.py — JSON extraction, per-element
validation, risk clamping and id filtering.
"""

from __future__ import annotations

import json

import pytest

from aegis.backend.enrichment.validator import clamp_risk, validate_classification_response
from aegis.backend.models import Correction


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _item(pid: str = "abc123", risk=72, analysis="SYN flood pattern on telnet.") -> dict:
    return {"id": pid, "risk_score": risk, "analysis": analysis}


def _raw(*items, wrap: bool = False) -> str:
    data = list(items) or [_item()]
    return json.dumps({"results": data} if wrap else data)


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------

class TestValidatorHappyPath:

    def test_plain_array(self):
        result = validate_classification_response(_raw())
        assert result == [Correction("abc123", 72, "SYN flood pattern on telnet.")]

    def test_wrapped_object(self):
        result = validate_classification_response(_raw(_item("a"), _item("b"), wrap=True))
        assert [c.id for c in result] == ["a", "b"]

    def test_single_bare_object(self):
        result = validate_classification_response(json.dumps(_item("solo")))
        assert [c.id for c in result] == ["solo"]

    def test_empty_array_is_valid(self):
        assert validate_classification_response("[]") == []

    def test_float_score_rounded(self):
        result = validate_classification_response(_raw(_item(risk=42.5)))
        assert result[0].risk_score == 43


class TestFenceAndPreamble:

    def test_strips_json_fence(self):
        assert validate_classification_response(f"```json\n{_raw()}\n```") is not None

    def test_strips_plain_fence(self):
        assert validate_classification_response(f"```\n{_raw()}\n```") is not None

    def test_ignores_preamble_text(self):
        raw = f"Here are the results:\n{_raw(wrap=True)}\nDone."
        result = validate_classification_response(raw)
        assert [c.id for c in result] == ["abc123"]


# ---------------------------------------------------------------------------
# Clamping
# ---------------------------------------------------------------------------

class TestClamping:

    @pytest.mark.parametrize("value,expected", [
        (-5, 0), (0, 0), (55, 55), (100, 100), (180, 100), (99.6, 100), (0.4, 0),
    ])
    def test_clamp_risk(self, value, expected):
        assert clamp_risk(value) == expected

    def test_out_of_range_scores_clamped_not_dropped(self):
        result = validate_classification_response(_raw(_item("hi", 250), _item("lo", -10)))
        assert [(c.id, c.risk_score) for c in result] == [("hi", 100), ("lo", 0)]


# ---------------------------------------------------------------------------
# Element-level rejection
# ---------------------------------------------------------------------------

class TestElementRejection:

    def test_missing_fields_dropped(self):
        bad = [{"id": "x", "risk_score": 10}, {"risk_score": 10, "analysis": "a"}]
        result = validate_classification_response(json.dumps(bad + [_item("ok")]))
        assert [c.id for c in result] == ["ok"]

    def test_non_numeric_score_dropped(self):
        result = validate_classification_response(_raw(_item("s", "high"), _item("ok")))
        assert [c.id for c in result] == ["ok"]

    def test_boolean_score_dropped(self):
        result = validate_classification_response(_raw(_item("b", True)))
        assert result == []

    def test_non_object_elements_dropped(self):
        result = validate_classification_response(json.dumps(["text", 3, _item("ok")]))
        assert [c.id for c in result] == ["ok"]

    def test_unknown_ids_dropped(self):
        result = validate_classification_response(
            _raw(_item("known"), _item("invented")), known_ids={"known"}
        )
        assert [c.id for c in result] == ["known"]

    def test_duplicate_ids_keep_first(self):
        result = validate_classification_response(_raw(_item("d", 10), _item("d", 90)))
        assert [(c.id, c.risk_score) for c in result] == [("d", 10)]

    def test_long_analysis_truncated(self):
        result = validate_classification_response(_raw(_item(analysis="x" * 2000)))
        assert len(result[0].analysis) == 500


# ---------------------------------------------------------------------------
# Document-level rejection
# ---------------------------------------------------------------------------

class TestMalformedDocument:

    def test_empty_string_returns_none(self):
        assert validate_classification_response("") is None

    def test_whitespace_only_returns_none(self):
        assert validate_classification_response("   \n  ") is None

    def test_invalid_json_returns_none(self):
        assert validate_classification_response("[{not valid json}]") is None

    def test_plain_text_returns_none(self):
        assert validate_classification_response("All packets look safe.") is None

    def test_object_without_result_list_returns_none(self):
        assert validate_classification_response('{"status": "ok"}') is None
