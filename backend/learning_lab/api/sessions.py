"""
Session endpoints: one resource per learner session, one POST per action.

Every action returns the session snapshot. Unknown sessions are 404, actions the
current stage does not accept (including anything while a generation is in
flight, or a third answer to a question) are 409.
"""
from typing import Callable, TypeVar
import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from learning_lab.core.deps import (
    get_exercise_generator,
    get_linguistic_service,
    get_session_store,
)
from learning_lab.models.exercise import Grade, MathTopic
from learning_lab.models.linguistic import LinguisticAnswers, Student
from learning_lab.services.exercise_generator import ExerciseGenerator
from learning_lab.services.linguistic import LinguisticService
from learning_lab.services.session import (
    IncompleteAnswers,
    LinguisticSession,
    MathSession,
    SessionNotFound,
    SessionStore,
)
from learning_lab.services.state_machine import InvalidTransition
from learning_lab.services.telemetry import instrument
from learning_lab.utils.answer_check import AnswerLocked, answer_kind, compose_answer

router = APIRouter(prefix="/api/sessions", tags=["sessions"])

logger = logging.getLogger("learninglab.sessions")

T = TypeVar("T")


class MathSessionCreate(BaseModel):
    grade: Grade


class TopicChoice(BaseModel):
    topic: MathTopic


class AnswerSubmission(BaseModel):
    """Either the full answer, or the separate input boxes for it."""

    answer: str | None = None
    value: str = ""
    numerator: str = ""
    denominator: str = ""
    quotient: str = ""
    remainder: str = ""


class LinguisticSessionCreate(BaseModel):
    name: str = Field(min_length=1)
    grade: Grade


class McqChoice(BaseModel):
    index: int = Field(ge=0)
    option: str


class OpenAnswers(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    open_answers: list[str] = Field(alias="openAnswers")


def _act(action: Callable[[], T]) -> T:
    try:
        return action()
    except (InvalidTransition, AnswerLocked) as e:
        raise HTTPException(status_code=409, detail=str(e))
    except (IncompleteAnswers, IndexError) as e:
        raise HTTPException(status_code=422, detail=str(e))


def _math(store: SessionStore, session_id: str) -> MathSession:
    try:
        return store.get(session_id, MathSession.kind)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail="Session not found")


def _linguistic(store: SessionStore, session_id: str) -> LinguisticSession:
    try:
        return store.get(session_id, LinguisticSession.kind)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail="Session not found")


# ── Math path ──

@router.post("/math", status_code=201)
@instrument(route="/api/sessions/math", version="v1")
def create_math_session(
    body: MathSessionCreate,
    generator: ExerciseGenerator = Depends(get_exercise_generator),
    store: SessionStore = Depends(get_session_store),
):
    session = store.add(MathSession(generator, body.grade))
    return session.snapshot()


@router.get("/math/{session_id}")
def get_math_session(session_id: str, store: SessionStore = Depends(get_session_store)):
    return _math(store, session_id).snapshot()


@router.post("/math/{session_id}/topic")
@instrument(route="/api/sessions/math/topic", version="v1")
def select_topic(session_id: str, body: TopicChoice, store: SessionStore = Depends(get_session_store)):
    session = _math(store, session_id)
    _act(lambda: session.select_topic(body.topic))
    return session.snapshot()


@router.post("/math/{session_id}/answer")
@instrument(route="/api/sessions/math/answer", version="v1")
def submit_answer(session_id: str, body: AnswerSubmission, store: SessionStore = Depends(get_session_store)):
    session = _math(store, session_id)
    answer = body.answer
    if answer is None:
        if session.exercise is None:
            raise HTTPException(status_code=409, detail="No exercise to answer")
        answer = compose_answer(
            answer_kind(session.exercise.answer),
            value=body.value,
            numerator=body.numerator,
            denominator=body.denominator,
            quotient=body.quotient,
            remainder=body.remainder,
        )
    _act(lambda: session.submit_answer(answer))
    return session.snapshot()


@router.post("/math/{session_id}/next")
@instrument(route="/api/sessions/math/next", version="v1")
def next_exercise(session_id: str, store: SessionStore = Depends(get_session_store)):
    session = _math(store, session_id)
    _act(session.next_exercise)
    return session.snapshot()


@router.post("/math/{session_id}/try-again")
@instrument(route="/api/sessions/math/try-again", version="v1")
def try_again(session_id: str, store: SessionStore = Depends(get_session_store)):
    session = _math(store, session_id)
    _act(session.try_again)
    return session.snapshot()


@router.post("/math/{session_id}/back")
def back_to_topics(session_id: str, store: SessionStore = Depends(get_session_store)):
    session = _math(store, session_id)
    _act(session.back_to_topics)
    return session.snapshot()


# ── Linguistic path ──

@router.post("/linguistic", status_code=201)
@instrument(route="/api/sessions/linguistic", version="v1")
def create_linguistic_session(
    body: LinguisticSessionCreate,
    service: LinguisticService = Depends(get_linguistic_service),
    store: SessionStore = Depends(get_session_store),
):
    student = Student(name=body.name, grade=body.grade)
    session = store.add(LinguisticSession(service, student))
    return session.snapshot()


@router.get("/linguistic/{session_id}")
def get_linguistic_session(session_id: str, store: SessionStore = Depends(get_session_store)):
    return _linguistic(store, session_id).snapshot()


@router.post("/linguistic/{session_id}/intro")
@instrument(route="/api/sessions/linguistic/intro", version="v1")
def submit_intro(session_id: str, body: LinguisticAnswers, store: SessionStore = Depends(get_session_store)):
    session = _linguistic(store, session_id)
    _act(lambda: session.submit_intro(body))
    return session.snapshot()


@router.post("/linguistic/{session_id}/nikud")
@instrument(route="/api/sessions/linguistic/nikud", version="v1")
def add_nikud(session_id: str, store: SessionStore = Depends(get_session_store)):
    session = _linguistic(store, session_id)
    _act(session.add_nikud)
    return session.snapshot()


@router.post("/linguistic/{session_id}/proceed")
def proceed_to_questions(session_id: str, store: SessionStore = Depends(get_session_store)):
    session = _linguistic(store, session_id)
    _act(session.proceed_to_questions)
    return session.snapshot()


@router.post("/linguistic/{session_id}/answer-mcq")
def answer_mcq(session_id: str, body: McqChoice, store: SessionStore = Depends(get_session_store)):
    session = _linguistic(store, session_id)
    _act(lambda: session.answer_mcq(body.index, body.option))
    return session.snapshot()


@router.post("/linguistic/{session_id}/finish-questions")
def finish_questions(session_id: str, body: OpenAnswers, store: SessionStore = Depends(get_session_store)):
    session = _linguistic(store, session_id)
    _act(lambda: session.finish_questions(body.open_answers))
    return session.snapshot()


@router.post("/linguistic/{session_id}/image")
@instrument(route="/api/sessions/linguistic/image", version="v1")
def generate_image(session_id: str, store: SessionStore = Depends(get_session_store)):
    session = _linguistic(store, session_id)
    _act(session.generate_image)
    return session.snapshot()


@router.post("/linguistic/{session_id}/back")
def linguistic_back(session_id: str, store: SessionStore = Depends(get_session_store)):
    session = _linguistic(store, session_id)
    _act(session.back)
    return session.snapshot()


@router.post("/linguistic/{session_id}/restart")
def restart(session_id: str, store: SessionStore = Depends(get_session_store)):
    session = _linguistic(store, session_id)
    _act(session.restart)
    return session.snapshot()
