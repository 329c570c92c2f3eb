"""
Exercise generation: one attempt, then the retry budget around it.

  ExerciseAttempter.attempt(request)  -> Exercise | AttemptFailure
      build prompt (fresh seed) -> one call to the model -> parse -> validate

  ExerciseGenerator.generate(request) -> Exercise
      up to max_attempts sequential attempts, first valid exercise wins,
      ExhaustedRetries otherwise
"""
from __future__ import annotations

import logging

from pydantic import ValidationError

from learning_lab.models.exercise import Exercise, GenerationRequest
from learning_lab.prompts.math_exercise import build_exercise_prompt
from learning_lab.services.llm_client import GenerationConfig, LLMClient, TransportError
from learning_lab.services.retry import AttemptFailure, Exhausted, FailureKind, retry
from learning_lab.utils.response_validator import (
    is_valid_exercise,
    parse_json_response,
    visualization_of,
)

logger = logging.getLogger("learninglab.exercises")

DEFAULT_MAX_ATTEMPTS = 3

_JSON_CONFIG = GenerationConfig(response_format="json")


class ExhaustedRetries(Exception):
    """No attempt within the budget produced a valid exercise."""

    def __init__(self, failures: list[AttemptFailure]):
        self.failures = failures
        kinds = ", ".join(f.kind.value for f in failures)
        super().__init__(
            f"Failed to generate a valid exercise after {len(failures)} attempts ({kinds})"
        )


def _build_exercise(data: dict, request: GenerationRequest) -> Exercise | AttemptFailure:
    # operationType only means something for the four-operations topic.
    operation_type = None
    if request.topic == "4_operations":
        operation_type = data.get("operationType") or None
        forced = request.operation_type if request.is_follow_up else None
        if forced and operation_type is None:
            operation_type = forced
        if forced and operation_type != forced:
            return AttemptFailure(
                FailureKind.VALIDATION,
                f"operationType {operation_type!r} does not match forced {forced!r}",
            )
    try:
        return Exercise(
            problem_text=data["problemText"],
            visualization=visualization_of(data),
            answer=data["answer"],
            explanation=data["explanation"],
            explanation_hint=data.get("explanationHint") or None,
            operation_type=operation_type,
        )
    except ValidationError as exc:
        return AttemptFailure(FailureKind.VALIDATION, str(exc))


class ExerciseAttempter:
    def __init__(self, client: LLMClient, model: str):
        self.client = client
        self.model = model

    def attempt(self, request: GenerationRequest) -> Exercise | AttemptFailure:
        prompt = build_exercise_prompt(
            request.topic,
            request.grade,
            is_follow_up=request.is_follow_up,
            operation_type=request.operation_type,
            last_operation_type_to_avoid=request.last_operation_type_to_avoid,
        )
        try:
            raw = self.client.generate_text(prompt, self.model, _JSON_CONFIG)
        except TransportError as exc:
            return AttemptFailure(FailureKind.TRANSPORT, str(exc))

        data = parse_json_response(raw)
        if data is None:
            return AttemptFailure(FailureKind.PARSE, f"not JSON: {raw[:120]!r}")
        if not is_valid_exercise(data):
            return AttemptFailure(FailureKind.VALIDATION, "missing fields or '?' operator placeholder")
        return _build_exercise(data, request)


class ExerciseGenerator:
    def __init__(
        self,
        client: LLMClient,
        model: str,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        attempter: ExerciseAttempter | None = None,
    ):
        self.attempter = attempter or ExerciseAttempter(client, model)
        self.max_attempts = max_attempts

    def generate(self, request: GenerationRequest) -> Exercise:
        def _one(number: int) -> Exercise | AttemptFailure:
            outcome = self.attempter.attempt(request)
            if isinstance(outcome, AttemptFailure):
                logger.warning(
                    "Exercise attempt %d/%d failed topic=%s grade=%s kind=%s: %s",
                    number, self.max_attempts, request.topic, request.grade,
                    outcome.kind.value, outcome.detail,
                )
            return outcome

        result = retry(_one, self.max_attempts)
        if isinstance(result, Exhausted):
            logger.error(
                "Exercise generation exhausted %d attempts topic=%s grade=%s",
                result.attempts, request.topic, request.grade,
            )
            raise ExhaustedRetries(result.failures)

        logger.info(
            "Generated exercise topic=%s grade=%s operation=%s",
            request.topic, request.grade, result.operation_type,
        )
        return result
