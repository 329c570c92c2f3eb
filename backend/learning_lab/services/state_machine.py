"""Table-driven finite state machine used by the session controllers."""
from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Generic, Mapping, TypeVar

logger = logging.getLogger("learninglab.sessions")

S = TypeVar("S", bound=Enum)


class InvalidTransition(Exception):
    def __init__(self, state: Enum, event: str):
        self.state = state
        self.event = event
        super().__init__(f"'{event}' is not allowed in stage '{state.value}'")


class SessionBusy(InvalidTransition):
    """A generation is in flight; the session accepts no other action."""


class StateMachine(Generic[S]):
    def __init__(
        self,
        transitions: Mapping[tuple[S, str], S],
        initial: S,
        busy_states: frozenset = frozenset(),
    ):
        self._transitions = transitions
        self._busy_states = busy_states
        # Handlers run in a threadpool; check-and-set must not interleave.
        self._lock = threading.Lock()
        self.state = initial

    @property
    def busy(self) -> bool:
        return self.state in self._busy_states

    def can(self, event: str) -> bool:
        return (self.state, event) in self._transitions

    def fire(self, event: str) -> S:
        with self._lock:
            target = self._transitions.get((self.state, event))
            if target is None:
                if self.busy:
                    raise SessionBusy(self.state, event)
                raise InvalidTransition(self.state, event)
            logger.debug("%s --%s--> %s", self.state.value, event, target.value)
            self.state = target
            return target
