"""Tests for the /api/sessions endpoints."""
import pytest
from fastapi.testclient import TestClient

from conftest import StubLLMClient, exercise_json, questions_json
from learning_lab.core.deps import get_llm_client, get_session_store
from learning_lab.main import app
from learning_lab.services.session import EXERCISE_ERROR, POLICY_ERROR, SessionStore

client = TestClient(app)


@pytest.fixture
def llm():
    stub = StubLLMClient()
    store = SessionStore()
    app.dependency_overrides[get_llm_client] = lambda: stub
    app.dependency_overrides[get_session_store] = lambda: store
    yield stub
    app.dependency_overrides.clear()


def _math_session(grade="ד") -> str:
    response = client.post("/api/sessions/math", json={"grade": grade})
    assert response.status_code == 201
    return response.json()["sessionId"]


class TestMathSessionApi:
    def test_create(self, llm):
        response = client.post("/api/sessions/math", json={"grade": "ה"})
        body = response.json()
        assert body["stage"] == "topic_selection"
        assert body["exercise"] is None

    def test_invalid_grade(self, llm):
        assert client.post("/api/sessions/math", json={"grade": "ז"}).status_code == 422

    def test_unknown_session(self, llm):
        assert client.get("/api/sessions/math/missing").status_code == 404

    def test_policy_rejection(self, llm):
        sid = _math_session(grade="ג")
        body = client.post(f"/api/sessions/math/{sid}/topic", json={"topic": "average"}).json()
        assert body["stage"] == "topic_selection"
        assert body["error"] == POLICY_ERROR
        assert llm.text_calls == []

    def test_exercise_flow(self, llm):
        sid = _math_session()
        llm.queue(exercise_json())
        body = client.post(f"/api/sessions/math/{sid}/topic", json={"topic": "4_operations"}).json()
        assert body["stage"] == "exercise"
        assert "answer" not in body["exercise"]

        body = client.post(f"/api/sessions/math/{sid}/answer", json={"answer": "15"}).json()
        assert body["feedback"] == "correct"
        assert body["exercise"]["answer"] == "15"

        response = client.post(f"/api/sessions/math/{sid}/answer", json={"answer": "15"})
        assert response.status_code == 409

        llm.queue(exercise_json(operationType="addition"))
        client.post(f"/api/sessions/math/{sid}/next")
        assert "MUST NOT be **subtraction**" in llm.text_calls[-1]["prompt"]

    def test_answer_from_input_boxes(self, llm):
        sid = _math_session()
        llm.queue(exercise_json(answer="7,1", operationType="division"))
        client.post(f"/api/sessions/math/{sid}/topic", json={"topic": "4_operations"})
        body = client.post(f"/api/sessions/math/{sid}/answer",
                           json={"quotient": "7", "remainder": "1"}).json()
        assert body["feedback"] == "correct"

    def test_try_again_and_back(self, llm):
        sid = _math_session()
        llm.queue(exercise_json(), exercise_json())
        client.post(f"/api/sessions/math/{sid}/topic", json={"topic": "4_operations"})
        assert client.post(f"/api/sessions/math/{sid}/try-again").status_code == 409
        for wrong in ("1", "2"):
            client.post(f"/api/sessions/math/{sid}/answer", json={"answer": wrong})
        client.post(f"/api/sessions/math/{sid}/try-again")
        assert "You MUST use the operation **subtraction**" in llm.text_calls[-1]["prompt"]
        body = client.post(f"/api/sessions/math/{sid}/back").json()
        assert body["stage"] == "topic_selection"

    def test_generation_failure(self, llm):
        sid = _math_session()
        llm.queue("bad", "bad", "bad")
        body = client.post(f"/api/sessions/math/{sid}/topic", json={"topic": "fractions"}).json()
        assert body["stage"] == "topic_selection"
        assert body["error"] == EXERCISE_ERROR

    def test_invalid_transition_is_409(self, llm):
        sid = _math_session()
        assert client.post(f"/api/sessions/math/{sid}/next").status_code == 409
        assert client.post(f"/api/sessions/math/{sid}/try-again").status_code == 409
        assert llm.text_calls == []


class TestLinguisticSessionApi:
    def _create(self):
        response = client.post("/api/sessions/linguistic", json={"name": "יואב", "grade": "ד"})
        assert response.status_code == 201
        return response.json()["sessionId"]

    def test_full_flow(self, llm):
        sid = self._create()
        base = f"/api/sessions/linguistic/{sid}"
        llm.queue("סיפור על יואב", questions_json(), "סִפּוּר")

        body = client.post(f"{base}/intro", json={
            "storyType": "חיות",
            "achievement": "עזרתי לחבר",
            "favoritePlace": "טבע",
            "roleModel": "אמא",
            "colors": ["ירוק"],
        }).json()
        assert body["stage"] == "story"
        assert body["story"] == "סיפור על יואב"

        body = client.post(f"{base}/nikud").json()
        assert body["nikud"] is True
        assert body["story"] == "סִפּוּר"

        assert client.post(f"{base}/proceed").json()["stage"] == "questions"
        for i in range(3):
            client.post(f"{base}/answer-mcq", json={"index": i, "option": "ב"})

        response = client.post(f"{base}/finish-questions", json={"openAnswers": ["א"]})
        assert response.status_code == 422

        body = client.post(f"{base}/finish-questions", json={"openAnswers": ["א", "ב"]}).json()
        assert body["stage"] == "pre_image_prompt"

        body = client.post(f"{base}/image").json()
        assert body["stage"] == "image_result"
        assert body["imageBase64"] == "aW1hZ2U="

        assert client.post(f"{base}/restart").json()["stage"] == "intro"

    def test_kind_mismatch_is_404(self, llm):
        sid = self._create()
        assert client.get(f"/api/sessions/math/{sid}").status_code == 404

    def test_back_from_intro_is_409(self, llm):
        sid = self._create()
        assert client.post(f"/api/sessions/linguistic/{sid}/back").status_code == 409
