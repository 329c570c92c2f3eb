from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from learning_lab.models.exercise import Grade

StoryType = Literal["הרפתקאות", "חיות", "מצחיק", "קסם", "משפחה"]
FavoritePlace = Literal["בית", "טבע", "בית ספר", "ספורט", "יצירה"]
Color = Literal["כחול", "אדום", "ירוק", "צהוב", "סגול", "כתום", "ורוד", "כולם"]
Gender = Literal["male", "female", "unknown"]


class Student(BaseModel):
    name: str = Field(min_length=1)
    grade: Grade


class LinguisticAnswers(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    story_type: StoryType = Field(alias="storyType")
    achievement: str
    favorite_place: FavoritePlace = Field(alias="favoritePlace")
    role_model: str = Field(alias="roleModel")
    colors: list[Color] = []


class MCQ(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question: str = Field(min_length=1)
    options: list[str] = Field(min_length=4, max_length=4)
    correct_answer: str = Field(alias="correctAnswer")

    @model_validator(mode="after")
    def _correct_answer_is_an_option(self) -> "MCQ":
        if self.correct_answer not in self.options:
            raise ValueError("correctAnswer must be one of the options")
        return self


class ComprehensionData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    mcqs: list[MCQ]
    open_questions: list[str] = Field(alias="openQuestions")

    @property
    def total_questions(self) -> int:
        return len(self.mcqs) + len(self.open_questions)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)
