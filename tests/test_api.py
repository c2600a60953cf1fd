"""
HTTP 엔드포인트 테스트 — 가짜 백엔드를 주입한 앱을 TestClient 로 호출한다.
"""

import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from exam_engine.services.errors import LoadError


@pytest.fixture
def tokens():
    return []


@pytest.fixture
def client(backend, clock, tokens):
    def factory(token):
        tokens.append(token)
        return backend

    app = create_app(backend_factory=factory, clock=clock, run_schedulers=False)
    with TestClient(app) as c:
        yield c


def _start(client):
    response = client.post("/api/attempts/att-1/start")
    assert response.status_code == 200
    return response.json()


def test_start_returns_exam_screen(client):
    screen = _start(client)
    assert screen["status"] == "active"
    assert screen["test_title"] == "General Knowledge"
    assert screen["meta"] == ["8 Questions", "30 Minutes"]
    assert screen["timer"]["text"] == "30:00"
    assert screen["card"]["header"] == "Question 1 of 8"
    assert screen["card"]["widget"]["kind"] == "choice"
    assert screen["prev_visible"] is False
    assert screen["rail"]["unanswered_count"] == 8


def test_bearer_token_is_forwarded_to_backend(client, tokens):
    client.post("/api/attempts/att-1/start", headers={"Authorization": "Bearer abc123"})
    assert tokens == ["abc123"]


def test_exam_requires_started_attempt(client):
    assert client.get("/api/exam").status_code == 404


def test_second_start_while_active_conflicts(client):
    _start(client)
    assert client.post("/api/attempts/att-1/start").status_code == 409


def test_answer_and_navigate(client):
    screen = _start(client)
    widget = screen["card"]["widget"]
    widget["options"][2]["selected"] = True

    response = client.post("/api/exam/answer", json={"widget": widget})
    assert response.status_code == 200
    assert response.json()["answer"] == 2
    assert response.json()["answered_count"] == 1

    screen = client.post("/api/exam/next").json()
    assert screen["card"]["question_id"] == "2"
    assert screen["rail"]["buttons"][0]["css_class"] == "nav-question answered"

    screen = client.post("/api/exam/navigate", json={"index": 7}).json()
    assert screen["next_label"] == "Finish"
    assert screen["card"]["media_url"] == "/media/shape.png"


def test_navigate_out_of_range(client):
    _start(client)
    assert client.post("/api/exam/navigate", json={"index": 42}).status_code == 404


def test_invalid_widget_is_unprocessable(client):
    screen = _start(client)
    widget = screen["card"]["widget"]
    for option in widget["options"]:
        option["selected"] = True
    assert client.post("/api/exam/answer", json={"widget": widget}).status_code == 422


def test_reorder_ordering_question(client):
    _start(client)
    screen = client.post("/api/exam/navigate", json={"index": 5}).json()
    assert screen["card"]["widget"]["kind"] == "ordering"

    response = client.post("/api/exam/reorder", json={"from_index": 0, "to_index": 2})
    assert response.json()["order"] == [1, 2, 0]

    screen = client.get("/api/exam").json()
    assert [i["text"] for i in screen["card"]["widget"]["items"]] == ["Steep", "Pour", "Boil"]


def test_clipboard_signal_is_suppressed(client):
    _start(client)
    body = client.post("/api/exam/proctoring", json={"signal": "paste"}).json()
    assert body["suppress"] is True
    assert body["copy_attempts"] == 1
    assert body["notice"] == "Copy/paste is disabled during this test."


def test_unknown_signal_is_rejected(client):
    _start(client)
    assert client.post("/api/exam/proctoring", json={"signal": "print"}).status_code == 422


def test_submit_asks_for_confirmation_then_completes(client, backend):
    _start(client)
    body = client.post("/api/exam/submit", json={}).json()
    assert body["confirm_required"] is True
    assert body["unanswered"] == 8
    assert backend.submits == []

    body = client.post("/api/exam/submit", json={"confirm": True}).json()
    assert body["ok"] is True
    assert body["result"]["score"] == 7
    assert body["redirect"] == "/dashboard.html"
    assert len(backend.submits) == 1

    screen = client.get("/api/exam").json()
    assert screen["status"] == "completed"
    assert screen["redirect"] == "/dashboard.html"


def test_submit_failure_can_be_retried(client, backend):
    backend.submit_failures = 1
    _start(client)

    response = client.post("/api/exam/submit", json={"confirm": True})
    assert response.status_code == 502
    assert response.json()["detail"]["retry"] is True
    assert client.get("/api/exam").json()["can_retry"] is True

    response = client.post("/api/exam/submit", json={"confirm": True})
    assert response.status_code == 200
    assert len(backend.submits) == 1


def test_submit_check_reports_unanswered(client):
    _start(client)
    body = client.get("/api/exam/submit-check").json()
    assert body["unanswered"] == 8
    assert body["warning"] == "You have 8 unanswered questions."


def test_missing_attempt_is_not_found(client, backend):
    backend.load_error = LoadError("Attempt not found", reason=LoadError.NOT_FOUND)
    response = client.post("/api/attempts/att-1/start")
    assert response.status_code == 404
    assert response.json()["detail"]["reason"] == "not_found"
    assert response.json()["detail"]["redirect"] == "/dashboard.html"


def test_expired_attempt_is_submitted_on_start(client, backend, clock):
    clock.advance(60 * 60)
    response = client.post("/api/attempts/att-1/start")
    assert response.status_code == 410
    detail = response.json()["detail"]
    assert detail["reason"] == "expired"
    assert detail["result"]["score"] == 7
    assert len(backend.submits) == 1


def test_leave_discards_exam(client):
    _start(client)
    body = client.post("/api/exam/leave").json()
    assert body["warning"].startswith("Your test progress will be saved")
    assert client.get("/api/exam").status_code == 404


def test_review_after_submit(client, backend):
    _start(client)
    client.post("/api/exam/submit", json={"confirm": True})

    screen = client.get("/api/attempts/att-1/review").json()
    assert len(screen["cards"]) == 8
    assert screen["filters"][0]["active"] is True

    assert client.get("/api/attempts/att-1/review", params={"filter": "pending"}).status_code == 400


def test_review_of_unsubmitted_attempt(client):
    response = client.get("/api/attempts/att-1/review")
    assert response.status_code == 400
    assert response.json()["detail"]["reason"] == "invalid"


def test_root_describes_api_without_frontend(client, monkeypatch, tmp_path):
    monkeypatch.setattr("api.app.INDEX_FILE", str(tmp_path / "index.html"))
    response = client.get("/")
    assert response.status_code == 200
    body = response.json()
    assert body["frontend"] is False
    assert body["start"] == "/api/attempts/{attempt_id}/start"


def test_root_serves_installed_frontend(client, monkeypatch, tmp_path):
    index = tmp_path / "index.html"
    index.write_text("<html>exam</html>", encoding="utf-8")
    monkeypatch.setattr("api.app.INDEX_FILE", str(index))
    response = client.get("/")
    assert response.status_code == 200
    assert "exam" in response.text
