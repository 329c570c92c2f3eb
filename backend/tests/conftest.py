import json
import os

import pytest

# Settings fail fast without a provider key; tests never reach the network.
os.environ.setdefault("GEMINI_API_KEY", "test-key")
os.environ.setdefault("LLM_PROVIDER", "gemini")

from learning_lab.services.llm_client import LLMClient  # noqa: E402


class StubLLMClient(LLMClient):
    """Replays queued responses. Queue str for text, or an Exception to raise."""

    def __init__(self, texts=None, image="aW1hZ2U="):
        self.texts = list(texts or [])
        self.image = image
        self.text_calls = []
        self.image_calls = []

    def queue(self, *responses):
        self.texts.extend(responses)
        return self

    def generate_text(self, prompt, model, config=None):
        self.text_calls.append({"prompt": prompt, "model": model, "config": config})
        if not self.texts:
            raise AssertionError("StubLLMClient ran out of queued responses")
        nxt = self.texts.pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        return nxt

    def generate_image(self, prompt, model):
        self.image_calls.append({"prompt": prompt, "model": model})
        if isinstance(self.image, Exception):
            raise self.image
        return self.image


def exercise_json(**overrides) -> str:
    data = {
        "problemText": "בחנות היו 24 תפוחים. מכרו 9. כמה תפוחים נשארו?",
        "visualizationSvg": "<svg viewBox='0 0 100 100'></svg>",
        "answer": "15",
        "explanation": "1. **24 - 9 = 15**\n2. התשובה היא **15**",
        "explanationHint": "1. **24 - 9 = ?**",
        "operationType": "subtraction",
    }
    data.update(overrides)
    return json.dumps({k: v for k, v in data.items() if v is not None}, ensure_ascii=False)


QUESTIONS = {
    "mcqs": [
        {
            "question": f"שאלה {i}?",
            "options": ["א", "ב", "ג", "ד"],
            "correctAnswer": "ב",
        }
        for i in range(1, 4)
    ],
    "openQuestions": ["למה הגיבור שמח?", "מה היית עושה במקומו?"],
}


def questions_json() -> str:
    return json.dumps(QUESTIONS, ensure_ascii=False)


@pytest.fixture
def stub_client():
    return StubLLMClient()
