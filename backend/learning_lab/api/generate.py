from typing import Any, Callable

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError
import logging

from learning_lab.core.deps import get_exercise_generator, get_linguistic_service
from learning_lab.models.exercise import Grade, GenerationRequest
from learning_lab.models.linguistic import LinguisticAnswers, Student
from learning_lab.services.exercise_generator import ExerciseGenerator, ExhaustedRetries
from learning_lab.services.linguistic import LinguisticGenerationError, LinguisticService
from learning_lab.services.telemetry import emit_event, instrument

router = APIRouter(prefix="/api", tags=["generate"])

logger = logging.getLogger("learninglab.generate")

# Static messages shown to the learner; details stay in the server log.
TASK_ERRORS: dict[str, str] = {
    "generateStory": "אירעה שגיאה ביצירת הסיפור. נסו שוב.",
    "addNikud": "אירעה שגיאה בהוספת הניקוד. נסו שוב.",
    "generateQuestions": "אירעה שגיאה ביצירת השאלות. נסו שוב.",
    "detectGender": "אירעה שגיאה בזיהוי המגדר.",
    "generateImage": "אירעה שגיאה ביצירת התמונה. נסו שוב.",
    "generateExercise": "אירעה שגיאה ביצירת התרגיל. נסו לבחור נושא אחר.",
}


class TaskRequest(BaseModel):
    task: str
    payload: dict[str, Any] = {}


# ── Task payloads ──

class StoryPayload(BaseModel):
    student: Student
    answers: LinguisticAnswers


class TextPayload(BaseModel):
    text: str = Field(min_length=1)


class QuestionsPayload(BaseModel):
    story: str = Field(min_length=1)
    grade: Grade


class GenderPayload(BaseModel):
    name: str = Field(min_length=1)


class ImagePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    story: str = Field(min_length=1)
    student_name: str = Field(alias="studentName", min_length=1)
    comprehension_answers: list[str] = Field(alias="comprehensionAnswers")
    colors: list[str]


class ExercisePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    topic: str
    grade: str
    operation_type: str | None = Field(default=None, alias="operationType")
    last_operation_type_to_avoid: str | None = Field(default=None, alias="lastOperationTypeToAvoid")
    is_follow_up: bool | None = Field(default=None, alias="isFollowUp")

    def to_request(self) -> GenerationRequest:
        is_follow_up = self.is_follow_up
        if is_follow_up is None:
            is_follow_up = self.operation_type is not None
        return GenerationRequest(
            topic=self.topic,
            grade=self.grade,
            is_follow_up=is_follow_up,
            operation_type=self.operation_type,
            last_operation_type_to_avoid=self.last_operation_type_to_avoid,
        )


class BadPayload(Exception):
    pass


def _parse(model: type[BaseModel], payload: dict) -> Any:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise BadPayload(exc.errors(include_url=False)[0].get("msg", "Invalid payload")) from exc


# ── Task handlers ──

def _generate_story(payload: dict, linguistic: LinguisticService, _gen) -> dict:
    p = _parse(StoryPayload, payload)
    return {"text": linguistic.generate_story(p.student, p.answers)}


def _add_nikud(payload: dict, linguistic: LinguisticService, _gen) -> dict:
    p = _parse(TextPayload, payload)
    return {"text": linguistic.add_nikud(p.text)}


def _generate_questions(payload: dict, linguistic: LinguisticService, _gen) -> dict:
    p = _parse(QuestionsPayload, payload)
    return linguistic.generate_questions(p.story, p.grade).to_wire()


def _detect_gender(payload: dict, linguistic: LinguisticService, _gen) -> dict:
    p = _parse(GenderPayload, payload)
    return {"gender": linguistic.detect_gender(p.name)}


def _generate_image(payload: dict, linguistic: LinguisticService, _gen) -> dict:
    try:
        p = ImagePayload.model_validate(payload)
    except ValidationError as exc:
        raise BadPayload("Missing required parameters for image generation.") from exc
    image = linguistic.generate_image(p.story, p.student_name, p.comprehension_answers, p.colors)
    return {"imageBase64": image}


def _generate_exercise(payload: dict, _ling, generator: ExerciseGenerator) -> dict:
    p = _parse(ExercisePayload, payload)
    try:
        request = p.to_request()
    except ValidationError as exc:
        raise BadPayload(exc.errors(include_url=False)[0].get("msg", "Invalid payload")) from exc
    return generator.generate(request).to_wire()


TASKS: dict[str, Callable[[dict, LinguisticService, ExerciseGenerator], dict]] = {
    "generateStory": _generate_story,
    "addNikud": _add_nikud,
    "generateQuestions": _generate_questions,
    "detectGender": _detect_gender,
    "generateImage": _generate_image,
    "generateExercise": _generate_exercise,
}


# ──────────────────────────────────────────────
# Endpoint
# ──────────────────────────────────────────────

@router.post("/generate")
@instrument(route="/api/generate", version="v1")
def generate(
    request: TaskRequest,
    linguistic: LinguisticService = Depends(get_linguistic_service),
    generator: ExerciseGenerator = Depends(get_exercise_generator),
):
    handler = TASKS.get(request.task)
    if handler is None:
        logger.warning("Unknown task: %s", request.task)
        return JSONResponse(status_code=400, content={"error": "Invalid task specified"})

    try:
        result = handler(request.payload, linguistic, generator)
    except BadPayload as e:
        logger.warning("Bad payload for task=%s: %s", request.task, e)
        return JSONResponse(status_code=400, content={"error": str(e)})
    except (ExhaustedRetries, LinguisticGenerationError) as e:
        logger.error("Task %s failed: %s", request.task, e)
        emit_event("task_failed", route="/api/generate", version="v1", task=request.task,
                   error_type=e.__class__.__name__, ok=False)
        return JSONResponse(status_code=500, content={"error": TASK_ERRORS[request.task]})
    except Exception:
        logger.exception("Unexpected error in task=%s", request.task)
        return JSONResponse(status_code=500, content={"error": TASK_ERRORS[request.task]})

    return JSONResponse(content=result)
