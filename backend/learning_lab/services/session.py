"""
Session controllers for the two learning paths.

Each controller owns a StateMachine and the in-memory state of one learner's
session. Generation collaborators are injected, so the controllers run the same
way behind the HTTP API and in unit tests.

Math path:        topic_selection -> generating_exercise -> exercise
Linguistic path:  intro -> generating_story -> story -> questions
                  -> pre_image_prompt -> generating_image -> image_result

Errors shown to the learner are fixed Hebrew messages; details only go to the
operator log.
"""
from __future__ import annotations

import logging
import uuid
from enum import Enum

from learning_lab.models.exercise import Exercise, GenerationRequest
from learning_lab.models.linguistic import ComprehensionData, LinguisticAnswers, Student
from learning_lab.services.exercise_generator import ExerciseGenerator, ExhaustedRetries
from learning_lab.services.linguistic import LinguisticGenerationError, LinguisticService
from learning_lab.services.state_machine import InvalidTransition, StateMachine
from learning_lab.utils.answer_check import (
    FINAL_FEEDBACK,
    Feedback,
    display_answer,
    is_correct,
    next_feedback,
)

logger = logging.getLogger("learninglab.sessions")

POLICY_ERROR = "אין תרגיל ברמתכם, אנא בחרו נושא אחר."
EXERCISE_ERROR = "אירעה שגיאה ביצירת התרגיל. נסו לבחור נושא אחר."
STORY_ERROR = "אירעה שגיאה ביצירת הסיפור. נסו שוב."
IMAGE_ERROR = "אירעה שגיאה ביצירת התמונה. נסו שוב."
NIKUD_ERROR = "אירעה שגיאה בהוספת הניקוד. נסו שוב."

# Topic/grade combinations outside the curriculum.
DISALLOWED_TOPICS: dict[str, frozenset[str]] = {
    "average": frozenset({"ג", "ד"}),
}


def is_topic_allowed(topic: str, grade: str) -> bool:
    return grade not in DISALLOWED_TOPICS.get(topic, frozenset())


class IncompleteAnswers(Exception):
    pass


class FeedbackPending(InvalidTransition):
    """The action needs the current question to reach a different feedback first."""

    def __init__(self, state: Enum, event: str, feedback: str):
        super().__init__(state, event)
        self.feedback = feedback
        self.args = (f"'{event}' is not allowed while the answer is '{feedback}'",)


# ---------------------------------------------------------------------------
# Math path
# ---------------------------------------------------------------------------


class MathStage(str, Enum):
    TOPIC_SELECTION = "topic_selection"
    GENERATING_EXERCISE = "generating_exercise"
    EXERCISE = "exercise"


MATH_TRANSITIONS: dict[tuple[MathStage, str], MathStage] = {
    (MathStage.TOPIC_SELECTION, "select_topic"): MathStage.GENERATING_EXERCISE,
    (MathStage.TOPIC_SELECTION, "reject_topic"): MathStage.TOPIC_SELECTION,
    (MathStage.GENERATING_EXERCISE, "exercise_ready"): MathStage.EXERCISE,
    (MathStage.GENERATING_EXERCISE, "generation_failed"): MathStage.TOPIC_SELECTION,
    (MathStage.EXERCISE, "submit_answer"): MathStage.EXERCISE,
    (MathStage.EXERCISE, "next_exercise"): MathStage.GENERATING_EXERCISE,
    (MathStage.EXERCISE, "try_again"): MathStage.GENERATING_EXERCISE,
    (MathStage.EXERCISE, "back_to_topics"): MathStage.TOPIC_SELECTION,
}


class MathSession:
    kind = "math"

    def __init__(self, generator: ExerciseGenerator, grade: str, session_id: str | None = None):
        self.id = session_id or uuid.uuid4().hex
        self.generator = generator
        self.grade = grade
        self.machine = StateMachine(
            MATH_TRANSITIONS,
            MathStage.TOPIC_SELECTION,
            busy_states=frozenset({MathStage.GENERATING_EXERCISE}),
        )
        self.topic: str | None = None
        self.exercise: Exercise | None = None
        self.feedback: Feedback = "unanswered"
        self.last_request: GenerationRequest | None = None
        self.error = ""

    @property
    def stage(self) -> MathStage:
        return self.machine.state

    def select_topic(self, topic: str) -> MathStage:
        if not self.machine.can("select_topic"):
            # Let the machine raise InvalidTransition / SessionBusy.
            self.machine.fire("select_topic")
        if not is_topic_allowed(topic, self.grade):
            logger.info("Rejected topic=%s for grade=%s", topic, self.grade)
            self.error = POLICY_ERROR
            return self.machine.fire("reject_topic")

        self.error = ""
        self.topic = topic
        return self._fetch("select_topic", GenerationRequest(topic=topic, grade=self.grade))

    def _require(self, event: str, allowed_feedback: tuple[str, ...]) -> None:
        if not self.machine.can(event):
            self.machine.fire(event)
        if self.feedback not in allowed_feedback:
            raise FeedbackPending(self.stage, event, self.feedback)

    def next_exercise(self) -> MathStage:
        self._require("next_exercise", FINAL_FEEDBACK)
        previous = self.exercise.operation_type if self.exercise else None
        request = GenerationRequest(
            topic=self.topic,
            grade=self.grade,
            last_operation_type_to_avoid=previous,
        )
        return self._fetch("next_exercise", request)

    def try_again(self) -> MathStage:
        # Offered only once both tries were used up.
        self._require("try_again", ("incorrect_2",))
        previous = self.exercise.operation_type if self.exercise else None
        request = GenerationRequest(
            topic=self.topic,
            grade=self.grade,
            is_follow_up=True,
            operation_type=previous,
        )
        return self._fetch("try_again", request)

    def back_to_topics(self) -> MathStage:
        stage = self.machine.fire("back_to_topics")
        self.exercise = None
        self.feedback = "unanswered"
        return stage

    def submit_answer(self, answer: str) -> Feedback:
        self.machine.fire("submit_answer")
        self.feedback = next_feedback(self.feedback, is_correct(self.exercise.answer, answer))
        return self.feedback

    def _fetch(self, event: str, request: GenerationRequest) -> MathStage:
        self.machine.fire(event)
        self.error = ""
        self.last_request = request
        try:
            exercise = self.generator.generate(request)
        except ExhaustedRetries:
            self.exercise = None
            self.error = EXERCISE_ERROR
            return self.machine.fire("generation_failed")
        except Exception:
            self.exercise = None
            self.error = EXERCISE_ERROR
            self.machine.fire("generation_failed")
            raise

        self.exercise = exercise
        self.feedback = "unanswered"
        return self.machine.fire("exercise_ready")

    def snapshot(self) -> dict:
        exercise = None
        if self.exercise is not None:
            exercise = self.exercise.to_wire()
            if self.feedback not in FINAL_FEEDBACK:
                # Solution stays hidden until the question is finished.
                exercise.pop("answer", None)
                exercise.pop("explanation", None)
            elif self.feedback == "incorrect_2":
                exercise["answerDisplay"] = display_answer(self.exercise.answer)
        return {
            "sessionId": self.id,
            "kind": self.kind,
            "stage": self.stage.value,
            "grade": self.grade,
            "topic": self.topic,
            "error": self.error,
            "feedback": self.feedback,
            "exercise": exercise,
        }


# ---------------------------------------------------------------------------
# Linguistic path
# ---------------------------------------------------------------------------


class LinguisticStage(str, Enum):
    INTRO = "intro"
    GENERATING_STORY = "generating_story"
    STORY = "story"
    QUESTIONS = "questions"
    PRE_IMAGE_PROMPT = "pre_image_prompt"
    GENERATING_IMAGE = "generating_image"
    IMAGE_RESULT = "image_result"


_L = LinguisticStage

LINGUISTIC_TRANSITIONS: dict[tuple[LinguisticStage, str], LinguisticStage] = {
    (_L.INTRO, "submit_intro"): _L.GENERATING_STORY,
    (_L.GENERATING_STORY, "story_ready"): _L.STORY,
    (_L.GENERATING_STORY, "generation_failed"): _L.INTRO,
    (_L.STORY, "add_nikud"): _L.STORY,
    (_L.STORY, "proceed"): _L.QUESTIONS,
    (_L.STORY, "back"): _L.INTRO,
    (_L.QUESTIONS, "answer_mcq"): _L.QUESTIONS,
    (_L.QUESTIONS, "finish_questions"): _L.PRE_IMAGE_PROMPT,
    (_L.QUESTIONS, "back"): _L.STORY,
    (_L.PRE_IMAGE_PROMPT, "generate_image"): _L.GENERATING_IMAGE,
    (_L.PRE_IMAGE_PROMPT, "back"): _L.QUESTIONS,
    (_L.GENERATING_IMAGE, "image_ready"): _L.IMAGE_RESULT,
    (_L.GENERATING_IMAGE, "generation_failed"): _L.QUESTIONS,
    (_L.IMAGE_RESULT, "restart"): _L.INTRO,
}


class LinguisticSession:
    kind = "linguistic"

    def __init__(self, service: LinguisticService, student: Student, session_id: str | None = None):
        self.id = session_id or uuid.uuid4().hex
        self.service = service
        self.student = student
        self.machine = StateMachine(
            LINGUISTIC_TRANSITIONS,
            _L.INTRO,
            busy_states=frozenset({_L.GENERATING_STORY, _L.GENERATING_IMAGE}),
        )
        self.answers: LinguisticAnswers | None = None
        self.story = ""
        self.vocalized_story = ""
        self.show_nikud = False
        self.questions: ComprehensionData | None = None
        self.mcq_answers: dict[int, tuple[str, Feedback]] = {}
        self.comprehension_answers: list[str] = []
        self.image_base64: str | None = None
        self.error = ""

    @property
    def stage(self) -> LinguisticStage:
        return self.machine.state

    @property
    def displayed_story(self) -> str:
        return self.vocalized_story if self.show_nikud else self.story

    def submit_intro(self, answers: LinguisticAnswers) -> LinguisticStage:
        self.machine.fire("submit_intro")
        self.answers = answers
        self.error = ""
        try:
            story = self.service.generate_story(self.student, answers)
            questions = self.service.generate_questions(story, self.student.grade)
        except LinguisticGenerationError as exc:
            logger.warning("Story generation failed for session %s: %s", self.id, exc)
            self.error = STORY_ERROR
            return self.machine.fire("generation_failed")
        except Exception:
            self.error = STORY_ERROR
            self.machine.fire("generation_failed")
            raise

        self.story = story
        self.vocalized_story = ""
        self.show_nikud = False
        self.questions = questions
        self.mcq_answers = {}
        return self.machine.fire("story_ready")

    def add_nikud(self) -> bool:
        self.machine.fire("add_nikud")
        if self.show_nikud:
            self.show_nikud = False
            return False
        if not self.vocalized_story:
            try:
                self.vocalized_story = self.service.add_nikud(self.story)
            except LinguisticGenerationError as exc:
                logger.warning("Nikud failed for session %s: %s", self.id, exc)
                self.error = NIKUD_ERROR
                return False
        self.error = ""
        self.show_nikud = True
        return True

    def proceed_to_questions(self) -> LinguisticStage:
        return self.machine.fire("proceed")

    def answer_mcq(self, index: int, option: str) -> Feedback:
        self.machine.fire("answer_mcq")
        if not 0 <= index < len(self.questions.mcqs):
            raise IndexError(f"no multiple-choice question at index {index}")
        mcq = self.questions.mcqs[index]
        _, current = self.mcq_answers.get(index, ("", "unanswered"))
        feedback = next_feedback(current, option == mcq.correct_answer)
        self.mcq_answers[index] = (option, feedback)
        return feedback

    def finish_questions(self, open_answers: list[str]) -> LinguisticStage:
        if not self.machine.can("finish_questions"):
            self.machine.fire("finish_questions")
        mcqs = self.questions.mcqs
        unfinished = [
            i for i in range(len(mcqs))
            if self.mcq_answers.get(i, ("", "unanswered"))[1] not in FINAL_FEEDBACK
        ]
        if unfinished:
            raise IncompleteAnswers(f"multiple-choice questions not finished: {unfinished}")
        if len(open_answers) != len(self.questions.open_questions) or not all(
            a.strip() for a in open_answers
        ):
            raise IncompleteAnswers("every open question needs an answer")

        # MCQ answers first, then the open answers, in question order.
        self.comprehension_answers = [self.mcq_answers[i][0] for i in range(len(mcqs))]
        self.comprehension_answers.extend(a.strip() for a in open_answers)
        return self.machine.fire("finish_questions")

    def generate_image(self) -> LinguisticStage:
        self.machine.fire("generate_image")
        self.error = ""
        colors = list(self.answers.colors) if self.answers else []
        try:
            image = self.service.generate_image(
                self.story, self.student.name, self.comprehension_answers, colors
            )
        except LinguisticGenerationError as exc:
            logger.warning("Image generation failed for session %s: %s", self.id, exc)
            self.error = IMAGE_ERROR
            return self.machine.fire("generation_failed")
        except Exception:
            self.error = IMAGE_ERROR
            self.machine.fire("generation_failed")
            raise

        self.image_base64 = image
        return self.machine.fire("image_ready")

    def back(self) -> LinguisticStage:
        return self.machine.fire("back")

    def restart(self) -> LinguisticStage:
        stage = self.machine.fire("restart")
        self.image_base64 = None
        self.comprehension_answers = []
        self.error = ""
        return stage

    def snapshot(self) -> dict:
        mcq_state = [
            {"index": i, "answer": answer, "feedback": feedback}
            for i, (answer, feedback) in sorted(self.mcq_answers.items())
        ]
        return {
            "sessionId": self.id,
            "kind": self.kind,
            "stage": self.stage.value,
            "student": self.student.model_dump(),
            "error": self.error,
            "story": self.displayed_story,
            "nikud": self.show_nikud,
            "questions": self.questions.to_wire() if self.questions else None,
            "mcqAnswers": mcq_state,
            "imageBase64": self.image_base64,
        }


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class SessionNotFound(KeyError):
    pass


class SessionStore:
    """Process-local sessions; nothing survives a restart."""

    def __init__(self):
        self._sessions: dict[str, MathSession | LinguisticSession] = {}

    def add(self, session: MathSession | LinguisticSession) -> MathSession | LinguisticSession:
        self._sessions[session.id] = session
        logger.info("Opened %s session %s", session.kind, session.id)
        return session

    def get(self, session_id: str, kind: str):
        session = self._sessions.get(session_id)
        if session is None or session.kind != kind:
            raise SessionNotFound(session_id)
        return session

    def discard(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._sessions)
