"""
api/routes.py — FastAPI 엔드포인트

브라우저 프런트엔드는 위젯 기술을 받아 그리고, 바뀐 위젯 상태와
감독 신호(blur, 클립보드, 전체화면)를 이 엔드포인트로 되돌려 보낸다.
"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

import api.session as session
from config import DASHBOARD_URL
from exam_engine.models.session_state import SessionStatus, SubmitTrigger
from exam_engine.services.errors import (
    AnswerValidationError,
    LoadError,
    SessionStateError,
    SubmitError,
)
from exam_engine.services.exam_service import FILTERS
from exam_engine.services.review_service import build_review
from exam_engine.services.session_controller import ExamSession
from exam_engine.views import exam_view, result_view
from exam_engine.views.widgets import InputWidget

logger = logging.getLogger(__name__)

router = APIRouter()

# ── Pydantic request bodies ──────────────────────────────────────────────────

class WidgetBody(BaseModel):
    widget: InputWidget

class ReorderBody(BaseModel):
    from_index: int
    to_index: int

class NavigateBody(BaseModel):
    index: int = 0

class SignalBody(BaseModel):
    signal: Literal[
        "visibility_hidden", "visibility_visible", "blur",
        "copy", "cut", "paste",
        "fullscreen_exit", "fullscreen_enter", "fullscreen_denied",
    ]

class SubmitBody(BaseModel):
    confirm: bool = False


# ── 헬퍼 ─────────────────────────────────────────────────────────────────────

def _sid(request: Request) -> str:
    return request.state.session_id


def _token(request: Request) -> str:
    header = request.headers.get("authorization", "")
    if header.lower().startswith("bearer "):
        token = header[7:].strip()
        session.put(_sid(request), "token", token)
        return token
    return session.get(_sid(request), "token", "")


def _exam(request: Request) -> ExamSession:
    exam: Optional[ExamSession] = session.get(_sid(request), "exam")
    if exam is None:
        raise HTTPException(status_code=404, detail="진행 중인 시험이 없습니다.")
    return exam


def _screen(exam: ExamSession) -> dict:
    return exam_view.render(exam).model_dump(mode="json")


async def _discard(state: dict) -> None:
    """응시 세션과 백엔드 클라이언트를 정리."""
    exam: Optional[ExamSession] = state.get("exam")
    if exam is not None:
        # 진행 중인 자동 저장이 끝난 뒤에 클라이언트를 닫는다
        await exam.aclose()
    backend = state.get("backend")
    if backend is not None and hasattr(backend, "aclose"):
        await backend.aclose()


def _load_error(e: LoadError, exam: Optional[ExamSession] = None) -> HTTPException:
    status = {
        LoadError.NOT_FOUND: 404,
        LoadError.EXPIRED: 410,
        LoadError.COMPLETED: 409,
    }.get(e.reason, 400)
    detail = {"message": str(e), "reason": e.reason, "redirect": e.redirect}
    if exam is not None and exam.result is not None:
        detail["result"] = exam.result.model_dump(mode="json")
        detail["summary"] = exam.result.summary()
    return HTTPException(status_code=status, detail=detail)


def _guard(fn):
    """엔진 예외를 HTTP 오류로 변환해 호출."""
    try:
        return fn()
    except AnswerValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except SessionStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except IndexError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ── 응시 시작 / 화면 ────────────────────────────────────────────────────────

@router.post("/api/attempts/{attempt_id}/start")
async def start_attempt(attempt_id: str, request: Request):
    sid = _sid(request)
    current: Optional[ExamSession] = session.get(sid, "exam")
    if current is not None and current.status in (SessionStatus.ACTIVE, SessionStatus.SUBMITTING):
        raise HTTPException(status_code=409, detail="이미 진행 중인 시험이 있습니다.")
    await _discard(session.reset(sid))

    app_state = request.app.state
    backend = app_state.backend_factory(_token(request))
    exam = ExamSession(backend, clock=app_state.clock, run_schedulers=app_state.run_schedulers)
    try:
        await exam.start(attempt_id)
    except LoadError as e:
        await exam.aclose()
        if hasattr(backend, "aclose"):
            await backend.aclose()
        raise _load_error(e, exam)

    session.put(sid, "exam", exam)
    session.put(sid, "backend", backend)
    return _screen(exam)


@router.get("/api/exam")
async def get_exam(request: Request):
    return _screen(_exam(request))


# ── 답안 / 이동 ──────────────────────────────────────────────────────────────

@router.post("/api/exam/draft")
async def save_draft(body: WidgetBody, request: Request):
    exam = _exam(request)
    _guard(lambda: exam.set_draft(body.widget))
    return {"ok": True}


@router.post("/api/exam/answer")
async def save_answer(body: WidgetBody, request: Request):
    exam = _exam(request)
    value = _guard(lambda: exam.answer(body.widget))
    return {"ok": True, "answer": value, "answered_count": len(exam.store)}


@router.post("/api/exam/reorder")
async def reorder_items(body: ReorderBody, request: Request):
    exam = _exam(request)
    order = _guard(lambda: exam.reorder(body.from_index, body.to_index))
    return {"ok": True, "order": order}


@router.post("/api/exam/navigate")
async def navigate(body: NavigateBody, request: Request):
    exam = _exam(request)
    _guard(lambda: exam.jump(body.index))
    return _screen(exam)


@router.post("/api/exam/next")
async def next_question(request: Request):
    exam = _exam(request)
    _guard(exam.next)
    return _screen(exam)


@router.post("/api/exam/prev")
async def prev_question(request: Request):
    exam = _exam(request)
    _guard(exam.prev)
    return _screen(exam)


# ── 감독 신호 ────────────────────────────────────────────────────────────────

@router.post("/api/exam/proctoring")
async def proctoring_signal(body: SignalBody, request: Request):
    exam = _exam(request)
    monitor = exam.proctoring
    if monitor is None:
        raise HTTPException(status_code=409, detail="감독이 시작되지 않았습니다.")

    suppress = False
    counted = False
    if body.signal == "visibility_hidden":
        counted = monitor.on_visibility_change(hidden=True)
    elif body.signal == "visibility_visible":
        monitor.on_visibility_change(hidden=False)
    elif body.signal == "blur":
        counted = monitor.on_window_blur()
    elif body.signal in ("copy", "cut", "paste"):
        suppress = counted = monitor.on_clipboard(body.signal)
    elif body.signal == "fullscreen_exit":
        counted = monitor.on_fullscreen_change(is_fullscreen=False)
    elif body.signal == "fullscreen_enter":
        monitor.on_fullscreen_change(is_fullscreen=True)
    else:
        monitor.on_fullscreen_denied()

    notice = monitor.active_notice()
    return {
        "suppress": suppress,
        "recorded": counted,
        "tab_switches": monitor.tab_switches,
        "copy_attempts": monitor.copy_attempts,
        "notice": notice.message if notice else None,
        "request_fullscreen": body.signal == "fullscreen_exit" and counted,
    }


# ── 제출 ─────────────────────────────────────────────────────────────────────

@router.get("/api/exam/submit-check")
async def submit_check(request: Request):
    exam = _exam(request)
    warning = _guard(exam.confirm_submission)
    return {
        "unanswered": warning.unanswered if warning else 0,
        "message": "Are you sure you want to submit your test?",
        "warning": warning.message if warning else None,
    }


@router.post("/api/exam/submit")
async def submit_exam(body: SubmitBody, request: Request):
    exam = _exam(request)
    if exam.status is SessionStatus.ACTIVE and not body.confirm:
        warning = _guard(exam.confirm_submission)
        if warning is not None:
            return {
                "ok": False,
                "confirm_required": True,
                "unanswered": warning.unanswered,
                "warning": warning.message,
            }

    try:
        result = await exam.submit(SubmitTrigger.MANUAL)
    except SubmitError as e:
        raise HTTPException(
            status_code=502,
            detail={"message": exam.alert or str(e), "retry": exam.can_retry},
        )
    except SessionStateError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return {
        "ok": True,
        "result": result.model_dump(mode="json") if result else None,
        "summary": exam.alert,
        "redirect": DASHBOARD_URL,
    }


@router.post("/api/exam/leave")
async def leave_exam(request: Request):
    exam: Optional[ExamSession] = session.get(_sid(request), "exam")
    warning = exam.leave_warning if exam else None
    await _discard(session.reset(_sid(request)))
    return {"ok": True, "warning": warning}


@router.post("/api/reset")
async def reset_session(request: Request):
    await _discard(session.reset(_sid(request)))
    return {"ok": True}


# ── 리뷰 ─────────────────────────────────────────────────────────────────────

@router.get("/api/attempts/{attempt_id}/review")
async def get_review(attempt_id: str, request: Request, filter: str = "all"):
    if filter not in FILTERS:
        raise HTTPException(status_code=400, detail=f"알 수 없는 필터: {filter}")

    backend = request.app.state.backend_factory(_token(request))
    try:
        completed = await backend.load_review(attempt_id)
    except LoadError as e:
        raise _load_error(e)
    finally:
        if hasattr(backend, "aclose"):
            await backend.aclose()

    review = build_review(completed, filter)
    return result_view.render(review).model_dump(mode="json")
