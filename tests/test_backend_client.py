import asyncio
import json

import httpx
import pytest

from conftest import RAW_QUESTIONS, make_attempt_raw

from exam_engine.models.session_state import ProgressSnapshot
from exam_engine.services.backend_client import BackendClient
from exam_engine.services.errors import LoadError, SaveError, SubmitError


def _client(handler):
    transport = httpx.MockTransport(handler)
    http = httpx.AsyncClient(base_url="http://backend.test", transport=transport)
    return BackendClient(token="tok", client=http)


def _run(coro):
    return asyncio.run(coro)


def test_load_attempt_parses_payload():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(200, json={"attempt": make_attempt_raw(), "questions": RAW_QUESTIONS})

    payload = _run(_client(handler).load_attempt("att-1"))
    assert seen == {"path": "/api/student/attempts/att-1", "auth": "Bearer tok"}
    assert payload.attempt.duration_minutes == 30
    assert [q.id for q in payload.questions][:2] == ["1", "2"]


def test_load_attempt_not_found():
    def handler(request):
        return httpx.Response(404, json={"message": "Attempt not found"})

    with pytest.raises(LoadError) as exc:
        _run(_client(handler).load_attempt("missing"))
    assert exc.value.reason == LoadError.NOT_FOUND
    assert str(exc.value) == "Attempt not found"


def test_load_attempt_malformed_body():
    def handler(request):
        return httpx.Response(200, json={"questions": []})

    with pytest.raises(LoadError):
        _run(_client(handler).load_attempt("att-1"))


def test_load_attempt_network_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(LoadError):
        _run(_client(handler).load_attempt("att-1"))


def test_save_progress_sends_full_snapshot():
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"ok": True})

    snapshot = ProgressSnapshot(answers={"1": 2}, tab_switches=1, copy_attempts=0)
    _run(_client(handler).save_progress("att-1", snapshot))
    assert seen["method"] == "PUT"
    assert seen["path"] == "/api/student/attempts/att-1/save"
    assert seen["body"] == {
        "answers": {"1": 2},
        "tab_switches": 1,
        "copy_attempts": 0,
        "suspicious_activity": [],
    }


def test_save_failure_raises_save_error():
    def handler(request):
        return httpx.Response(500)

    with pytest.raises(SaveError):
        _run(_client(handler).save_progress("att-1", ProgressSnapshot()))


def test_submit_returns_result():
    def handler(request):
        assert request.url.path == "/api/student/attempts/att-1/submit"
        return httpx.Response(200, json={"score": 3, "max_score": 4, "percentage": 75, "passed": True})

    result = _run(_client(handler).submit("att-1", ProgressSnapshot()))
    assert result.passed is True
    assert result.percentage == 75.0


def test_submit_failure_uses_backend_message():
    def handler(request):
        return httpx.Response(409, json={"message": "Attempt already submitted"})

    with pytest.raises(SubmitError) as exc:
        _run(_client(handler).submit("att-1", ProgressSnapshot()))
    assert str(exc.value) == "Attempt already submitted"


def test_load_review_requires_completed_attempt():
    def handler(request):
        return httpx.Response(200, json={"attempt": make_attempt_raw(), "questions": RAW_QUESTIONS})

    with pytest.raises(LoadError):
        _run(_client(handler).load_review("att-1"))


def test_load_review_parses_graded_answers():
    attempt = make_attempt_raw(
        is_completed=True,
        score=1,
        max_score=14,
        answers={"1": {"student_answer": 0, "is_correct": True, "earned_marks": 1}},
    )

    def handler(request):
        return httpx.Response(200, json={"attempt": attempt, "questions": RAW_QUESTIONS})

    completed = _run(_client(handler).load_review("att-1"))
    assert completed.graded("1").is_correct is True
    assert completed.questions[0].correct_answer == 0
