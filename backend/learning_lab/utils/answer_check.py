"""
Learner answer checking.

Canonical answers come in three shapes: "12", "3/4" or "2 1/4", and "7,1"
(quotient,remainder). Comparison ignores all whitespace. A question allows two
tries: unanswered -> incorrect_1 -> incorrect_2, or correct at any point.
"""
import re
from typing import Literal

AnswerKind = Literal["fraction", "remainder", "number"]
Feedback = Literal["unanswered", "incorrect_1", "incorrect_2", "correct"]

FINAL_FEEDBACK = ("correct", "incorrect_2")

_WHITESPACE_RE = re.compile(r"\s+")


class AnswerLocked(Exception):
    """The question was already answered correctly or used both tries."""


def answer_kind(answer: str) -> AnswerKind:
    if "/" in answer:
        return "fraction"
    if "," in answer:
        return "remainder"
    return "number"


def compose_answer(
    kind: AnswerKind,
    value: str = "",
    numerator: str = "",
    denominator: str = "",
    quotient: str = "",
    remainder: str = "",
) -> str:
    """Join separate input boxes into the canonical answer shape."""
    if kind == "fraction":
        return f"{numerator}/{denominator}"
    if kind == "remainder":
        return f"{quotient},{remainder}"
    return value


def normalize_answer(answer: str) -> str:
    return _WHITESPACE_RE.sub("", answer or "")


def is_correct(expected: str, given: str) -> bool:
    return normalize_answer(given) == normalize_answer(expected)


def next_feedback(current: Feedback, correct: bool) -> Feedback:
    if current in FINAL_FEEDBACK:
        raise AnswerLocked(f"question already finished ({current})")
    if correct:
        return "correct"
    return "incorrect_1" if current == "unanswered" else "incorrect_2"


def display_answer(answer: str) -> str:
    """Render "7,1" as "7 עם שארית 1" for the learner."""
    return answer.replace(",", " עם שארית ", 1)
