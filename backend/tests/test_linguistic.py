"""Tests for LinguisticService and the linguistic prompt builders."""
import json

import pytest

from conftest import QUESTIONS, StubLLMClient, questions_json
from learning_lab.models.linguistic import LinguisticAnswers, Student
from learning_lab.prompts.linguistic import (
    STORY_EXCERPT_CHARS,
    build_image_prompt,
    build_story_prompt,
)
from learning_lab.services.linguistic import LinguisticGenerationError, LinguisticService
from learning_lab.services.llm_client import TransportError

STUDENT = Student(name="נועה", grade="ד")
ANSWERS = LinguisticAnswers(
    storyType="חיות",
    achievement="למדתי לרכוב על אופניים",
    favoritePlace="טבע",
    roleModel="סבתא",
    colors=["כחול", "ירוק"],
)


def _service(client) -> LinguisticService:
    return LinguisticService(client, text_model="text-m", image_model="image-m")


# ── Prompts ───────────────────────────────────────────────────────────────────

class TestPrompts:
    def test_story_prompt_uses_name_and_preferences(self):
        prompt = build_story_prompt(STUDENT, ANSWERS)
        assert "MUST be named נועה" in prompt
        assert "למדתי לרכוב על אופניים" in prompt
        assert "כחול, ירוק" in prompt

    def test_image_prompt_truncates_story(self):
        story = "א" * (STORY_EXCERPT_CHARS + 500)
        prompt = build_image_prompt(story, "נועה", ["תשובה"], [], style="watercolor")
        assert "א" * STORY_EXCERPT_CHARS in prompt
        assert "א" * (STORY_EXCERPT_CHARS + 1) not in prompt
        assert "watercolor" in prompt
        assert "Do NOT include any text" in prompt


# ── Story and nikud ───────────────────────────────────────────────────────────

class TestStory:
    def test_story_uses_search_tool(self):
        client = StubLLMClient(["  היה היה פעם...  "])
        assert _service(client).generate_story(STUDENT, ANSWERS) == "היה היה פעם..."
        assert client.text_calls[0]["config"].tools == ["google_search"]
        assert client.text_calls[0]["model"] == "text-m"

    def test_empty_story_raises(self):
        with pytest.raises(LinguisticGenerationError):
            _service(StubLLMClient(["   "])).generate_story(STUDENT, ANSWERS)

    def test_transport_error_is_wrapped(self):
        with pytest.raises(LinguisticGenerationError):
            _service(StubLLMClient([TransportError("down")])).generate_story(STUDENT, ANSWERS)

    def test_single_call_no_retry(self):
        client = StubLLMClient([TransportError("down"), "never used"])
        with pytest.raises(LinguisticGenerationError):
            _service(client).add_nikud("שלום")
        assert len(client.text_calls) == 1

    def test_nikud(self):
        client = StubLLMClient(["שָׁלוֹם"])
        assert _service(client).add_nikud("שלום") == "שָׁלוֹם"
        assert "שלום" in client.text_calls[0]["prompt"]


# ── Questions ─────────────────────────────────────────────────────────────────

class TestQuestions:
    def test_questions_parsed(self):
        data = _service(StubLLMClient([questions_json()])).generate_questions("סיפור", "ד")
        assert len(data.mcqs) == 3
        assert data.mcqs[0].correct_answer == "ב"
        assert data.total_questions == 5
        assert data.to_wire() == QUESTIONS

    def test_fenced_questions_parsed(self):
        client = StubLLMClient(["```json\n" + questions_json() + "\n```"])
        assert len(_service(client).generate_questions("סיפור", "ד").open_questions) == 2

    def test_malformed_json_raises(self):
        with pytest.raises(LinguisticGenerationError):
            _service(StubLLMClient(["{"])).generate_questions("סיפור", "ד")

    def test_wrong_shape_raises(self):
        bad = json.dumps({"mcqs": [{"question": "?", "options": ["א"], "correctAnswer": "א"}],
                          "openQuestions": []})
        with pytest.raises(LinguisticGenerationError):
            _service(StubLLMClient([bad])).generate_questions("סיפור", "ד")

    def test_correct_answer_must_be_an_option(self):
        data = json.loads(questions_json())
        data["mcqs"][0]["correctAnswer"] = "ה"
        with pytest.raises(LinguisticGenerationError):
            _service(StubLLMClient([json.dumps(data)])).generate_questions("סיפור", "ד")


# ── Gender and image ──────────────────────────────────────────────────────────

class TestGenderAndImage:
    @pytest.mark.parametrize("gender", ["male", "female", "unknown"])
    def test_gender(self, gender):
        client = StubLLMClient([json.dumps({"gender": gender})])
        assert _service(client).detect_gender("נועה") == gender

    def test_unexpected_gender_falls_back_to_unknown(self):
        client = StubLLMClient(['{"gender": "robot"}'])
        assert _service(client).detect_gender("נועה") == "unknown"

    def test_image_returns_base64(self):
        client = StubLLMClient(image="abc=")
        assert _service(client).generate_image("סיפור", "נועה", ["א"], ["כחול"]) == "abc="
        assert client.image_calls[0]["model"] == "image-m"

    def test_image_may_be_absent(self):
        client = StubLLMClient(image=None)
        assert _service(client).generate_image("סיפור", "נועה", [], []) is None

    def test_image_transport_error_is_wrapped(self):
        client = StubLLMClient(image=TransportError("quota"))
        with pytest.raises(LinguisticGenerationError):
            _service(client).generate_image("סיפור", "נועה", [], [])
