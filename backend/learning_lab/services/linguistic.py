"""
Linguistic path generation.

Each operation is exactly one call to the model with no retry budget. Transport
and payload problems are raised as LinguisticGenerationError so the caller can
show its own message.
"""
from __future__ import annotations

import logging

from pydantic import ValidationError

from learning_lab.models.linguistic import ComprehensionData, LinguisticAnswers, Student
from learning_lab.prompts.linguistic import (
    build_gender_prompt,
    build_image_prompt,
    build_nikud_prompt,
    build_questions_prompt,
    build_story_prompt,
)
from learning_lab.services.llm_client import GenerationConfig, LLMClient, TransportError
from learning_lab.utils.response_validator import parse_json_response

logger = logging.getLogger("learninglab.linguistic")

_GENDERS = {"male", "female", "unknown"}


class LinguisticGenerationError(Exception):
    pass


class LinguisticService:
    def __init__(self, client: LLMClient, text_model: str, image_model: str):
        self.client = client
        self.text_model = text_model
        self.image_model = image_model

    def _text(self, task: str, prompt: str, config: GenerationConfig | None = None) -> str:
        try:
            return self.client.generate_text(prompt, self.text_model, config)
        except TransportError as exc:
            logger.error("%s failed: %s", task, exc)
            raise LinguisticGenerationError(f"{task} failed") from exc

    def generate_story(self, student: Student, answers: LinguisticAnswers) -> str:
        prompt = build_story_prompt(student, answers)
        story = self._text("generateStory", prompt, GenerationConfig(tools=["google_search"]))
        story = story.strip()
        if not story:
            raise LinguisticGenerationError("generateStory returned an empty story")
        logger.info("Generated story grade=%s words=%d", student.grade, len(story.split()))
        return story

    def add_nikud(self, text: str) -> str:
        vocalized = self._text("addNikud", build_nikud_prompt(text)).strip()
        if not vocalized:
            raise LinguisticGenerationError("addNikud returned empty text")
        return vocalized

    def generate_questions(self, story: str, grade: str) -> ComprehensionData:
        raw = self._text(
            "generateQuestions",
            build_questions_prompt(story, grade),
            GenerationConfig(response_format="json"),
        )
        data = parse_json_response(raw)
        if not isinstance(data, dict):
            logger.error("generateQuestions returned malformed JSON: %.200s", raw)
            raise LinguisticGenerationError("Invalid JSON structure for comprehension questions")
        try:
            return ComprehensionData.model_validate(data)
        except ValidationError as exc:
            logger.error("generateQuestions returned an invalid structure: %s", exc)
            raise LinguisticGenerationError(
                "Invalid JSON structure for comprehension questions"
            ) from exc

    def detect_gender(self, name: str) -> str:
        raw = self._text(
            "detectGender",
            build_gender_prompt(name),
            GenerationConfig(response_format="json"),
        )
        data = parse_json_response(raw)
        gender = data.get("gender") if isinstance(data, dict) else None
        if gender not in _GENDERS:
            logger.warning("detectGender got %r for %r; using unknown", gender, name)
            return "unknown"
        return gender

    def generate_image(
        self,
        story: str,
        student_name: str,
        comprehension_answers: list[str],
        colors: list[str],
    ) -> str | None:
        prompt = build_image_prompt(story, student_name, comprehension_answers, colors)
        try:
            return self.client.generate_image(prompt, self.image_model)
        except TransportError as exc:
            logger.error("generateImage failed: %s", exc)
            raise LinguisticGenerationError("generateImage failed") from exc
