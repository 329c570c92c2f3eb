"""Tests for response_validator: fence-tolerant parsing and exercise shape checks."""
import pytest
from learning_lab.utils.response_validator import (
    clean_json_response,
    has_placeholder_operator,
    is_valid_exercise,
    parse_json_response,
    visualization_of,
)


def _candidate(**overrides) -> dict:
    data = {
        "problemText": "25 × 14",
        "visualization": "<svg></svg>",
        "answer": "350",
        "explanation": "1. **25 × 14 = 350**",
    }
    data.update(overrides)
    return data


# ── Parsing ───────────────────────────────────────────────────────────────────

class TestParsing:
    def test_plain_json(self):
        assert parse_json_response('{"a": 1}') == {"a": 1}

    def test_json_fence_is_stripped(self):
        assert parse_json_response('```json\n{"a": 1}\n```') == {"a": 1}

    def test_bare_fence_is_stripped(self):
        assert parse_json_response('```\n{"a": 1}\n```') == {"a": 1}

    def test_surrounding_whitespace(self):
        assert parse_json_response('  \n```json\n{"a": 1}\n```\n ') == {"a": 1}

    def test_malformed_json_returns_none(self):
        assert parse_json_response('{"a": 1') is None

    def test_prose_returns_none(self):
        assert parse_json_response("Here is your exercise!") is None

    def test_non_string_returns_none(self):
        assert parse_json_response(None) is None

    def test_clean_leaves_unfenced_text_alone(self):
        assert clean_json_response('  {"a": 1}  ') == '{"a": 1}'


# ── Exercise validity ─────────────────────────────────────────────────────────

class TestIsValidExercise:
    def test_complete_candidate_is_valid(self):
        assert is_valid_exercise(_candidate()) is True

    def test_svg_key_counts_as_visualization(self):
        data = _candidate()
        data["visualizationSvg"] = data.pop("visualization")
        assert is_valid_exercise(data) is True
        assert visualization_of(data) == "<svg></svg>"

    @pytest.mark.parametrize("field", ["problemText", "answer", "explanation", "visualization"])
    def test_missing_field_is_invalid(self, field):
        data = _candidate()
        del data[field]
        assert is_valid_exercise(data) is False

    @pytest.mark.parametrize("field", ["problemText", "answer", "explanation", "visualization"])
    def test_blank_field_is_invalid(self, field):
        assert is_valid_exercise(_candidate(**{field: "   "})) is False

    @pytest.mark.parametrize("answer", [350, 0, 2.5])
    def test_numeric_answer_is_valid(self, answer):
        assert is_valid_exercise(_candidate(answer=answer)) is True

    @pytest.mark.parametrize("answer", [True, None, ["350"]])
    def test_non_text_answer_is_invalid(self, answer):
        assert is_valid_exercise(_candidate(answer=answer)) is False

    def test_numeric_problem_text_is_invalid(self):
        assert is_valid_exercise(_candidate(problemText=350)) is False

    def test_non_dict_is_invalid(self):
        assert is_valid_exercise(["problemText"]) is False
        assert is_valid_exercise(None) is False

    @pytest.mark.parametrize("text", ["2/5 ? 3/7", "4?5", "12 ? 3", "1/2?1/4"])
    def test_question_mark_operator_is_invalid(self, text):
        assert has_placeholder_operator(text) is True
        assert is_valid_exercise(_candidate(problemText=text)) is False

    @pytest.mark.parametrize("text", [
        "איזה מספר גדול יותר: 3/4 או 0.7?",
        "כמה תפוחים נשארו?",
        "מה הממוצע של 80, 90 ו-100?",
    ])
    def test_trailing_question_mark_is_fine(self, text):
        assert has_placeholder_operator(text) is False
        assert is_valid_exercise(_candidate(problemText=text)) is True
