"""Tests for learner answer checking and the two-try feedback progression."""
import pytest
from learning_lab.utils.answer_check import (
    AnswerLocked,
    answer_kind,
    compose_answer,
    display_answer,
    is_correct,
    next_feedback,
)


class TestAnswerKind:
    @pytest.mark.parametrize("answer,kind", [
        ("3/4", "fraction"),
        ("2 1/4", "fraction"),
        ("7,1", "remainder"),
        ("350", "number"),
    ])
    def test_kind_from_canonical_answer(self, answer, kind):
        assert answer_kind(answer) == kind


class TestCompose:
    def test_fraction_boxes(self):
        assert compose_answer("fraction", numerator="3", denominator="4") == "3/4"

    def test_remainder_boxes(self):
        assert compose_answer("remainder", quotient="7", remainder="1") == "7,1"

    def test_single_box(self):
        assert compose_answer("number", value="42") == "42"


class TestIsCorrect:
    def test_whitespace_is_ignored(self):
        assert is_correct("2 1/4", "21/4") is True
        assert is_correct("7,1", " 7 , 1 ") is True

    def test_wrong_answer(self):
        assert is_correct("15", "16") is False

    def test_empty_answer_is_wrong(self):
        assert is_correct("15", "") is False


class TestFeedback:
    def test_two_strikes(self):
        assert next_feedback("unanswered", False) == "incorrect_1"
        assert next_feedback("incorrect_1", False) == "incorrect_2"

    def test_correct_on_second_try(self):
        assert next_feedback("incorrect_1", True) == "correct"

    @pytest.mark.parametrize("final", ["correct", "incorrect_2"])
    def test_finished_question_is_locked(self, final):
        with pytest.raises(AnswerLocked):
            next_feedback(final, True)


def test_remainder_display():
    assert display_answer("7,1") == "7 עם שארית 1"
    assert display_answer("3/4") == "3/4"
