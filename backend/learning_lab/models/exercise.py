from typing import Literal, get_args

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

Grade = Literal["ג", "ד", "ה", "ו"]
MathTopic = Literal["4_operations", "fractions", "average", "word_problems"]
OperationType = Literal["addition", "subtraction", "multiplication", "division"]

GRADES: tuple[str, ...] = get_args(Grade)
MATH_TOPICS: tuple[str, ...] = get_args(MathTopic)
OPERATION_TYPES: tuple[str, ...] = get_args(OperationType)


class Exercise(BaseModel):
    """A generated math exercise. camelCase on the wire, immutable once built."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    problem_text: str = Field(alias="problemText")
    # The model is asked for "visualizationSvg"; clients read "visualization".
    visualization: str = Field(
        validation_alias=AliasChoices("visualization", "visualizationSvg"),
        serialization_alias="visualization",
    )
    answer: str
    explanation: str
    explanation_hint: str | None = Field(default=None, alias="explanationHint")
    operation_type: OperationType | None = Field(default=None, alias="operationType")

    @field_validator("answer", mode="before")
    @classmethod
    def _number_answer_to_text(cls, value):
        if isinstance(value, bool):
            return value
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        if isinstance(value, (int, float)):
            return str(value)
        return value

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class GenerationRequest(BaseModel):
    """One request for an exercise, built fresh per user action."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    topic: MathTopic
    grade: Grade
    is_follow_up: bool = Field(default=False, alias="isFollowUp")
    operation_type: OperationType | None = Field(default=None, alias="operationType")
    last_operation_type_to_avoid: OperationType | None = Field(
        default=None, alias="lastOperationTypeToAvoid"
    )
