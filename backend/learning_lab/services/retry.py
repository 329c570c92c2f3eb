"""
Fixed-budget retry without backoff.

retry(attempt, budget) calls attempt(1), attempt(2), ... in order and returns
the first result that is not an AttemptFailure. When every call fails it
returns Exhausted with the failures in attempt order. Nothing is raised; the
caller decides what exhaustion means.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Generic, TypeVar

logger = logging.getLogger("learninglab.retry")

T = TypeVar("T")


class FailureKind(str, Enum):
    TRANSPORT = "transport"
    PARSE = "parse"
    VALIDATION = "validation"


@dataclass(frozen=True)
class AttemptFailure:
    kind: FailureKind
    detail: str = ""


@dataclass(frozen=True)
class Exhausted(Generic[T]):
    failures: list[AttemptFailure] = field(default_factory=list)

    @property
    def attempts(self) -> int:
        return len(self.failures)


def retry(attempt: Callable[[int], T | AttemptFailure], budget: int) -> T | Exhausted:
    if budget < 1:
        raise ValueError("retry budget must be at least 1")

    failures: list[AttemptFailure] = []
    for number in range(1, budget + 1):
        outcome = attempt(number)
        if not isinstance(outcome, AttemptFailure):
            return outcome
        failures.append(outcome)
        logger.debug("Attempt %d/%d failed (%s)", number, budget, outcome.kind.value)
    return Exhausted(failures)
