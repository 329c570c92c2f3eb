"""Structural checks on model output.

Two steps, kept apart so callers can tell "not JSON" from "JSON of the wrong
shape":

  parse_json_response(text) -> dict | list | None
      Strips an optional ``` / ```json fence and decodes. None on malformed JSON.

  is_valid_exercise(candidate) -> bool
      Required fields present and non-blank, no '?' used as an operator
      between numbers or fractions in problemText.

Pedagogical correctness is never checked here.
"""
import json
import logging
import re

logger = logging.getLogger("learninglab.validator")

# Whole-string code fence with an optional language tag.
_FENCE_RE = re.compile(r"^```(\w*)?\s*\n?(.*?)\n?\s*```$", re.DOTALL)

# A '?' standing in for an operator: "2/5 ? 3/7", "4?5".
_PLACEHOLDER_OPERATOR_RE = re.compile(r"[\d/]\s*\?\s*[\d/]")

REQUIRED_FIELDS = ("problemText", "answer", "explanation")
VISUALIZATION_KEYS = ("visualization", "visualizationSvg")


def clean_json_response(content: str) -> str:
    """Strip markdown fences from model output."""
    content = content.strip()
    match = _FENCE_RE.match(content)
    if match and match.group(2):
        return match.group(2).strip()
    return content


def parse_json_response(content: str) -> dict | list | None:
    if not isinstance(content, str):
        return None
    cleaned = clean_json_response(content)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as exc:
        logger.debug("Malformed JSON from model (%s): %.200s", exc, content)
        return None


def _non_blank(value) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _present(field: str, value) -> bool:
    # JSON mode often sends the answer as a bare number.
    if field == "answer" and _is_number(value):
        return True
    return _non_blank(value)


def visualization_of(candidate: dict) -> str | None:
    for key in VISUALIZATION_KEYS:
        if _non_blank(candidate.get(key)):
            return candidate[key]
    return None


def has_placeholder_operator(problem_text: str) -> bool:
    return bool(_PLACEHOLDER_OPERATOR_RE.search(problem_text))


def is_valid_exercise(candidate) -> bool:
    if not isinstance(candidate, dict):
        return False
    if not all(_present(field, candidate.get(field)) for field in REQUIRED_FIELDS):
        return False
    if visualization_of(candidate) is None:
        return False
    if has_placeholder_operator(candidate["problemText"]):
        return False
    return True
