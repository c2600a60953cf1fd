"""
views/exam_view.py — 시험 풀기 화면

구성:
  - 헤더      : 시험 제목 + 문항 수 / 제한 시간
  - 사이드    : 타이머 + 문항 번호 진행 레일 + 미응답 수
  - 메인 영역 : 현재 문항 카드 + 이전/다음(마지막은 Finish) + 제출 버튼
  - 그 외     : 감독 안내, 자동 저장 표시, 전체화면 요청, 페이지 이탈 경고

세션 상태를 읽기만 하고 바꾸지 않는다.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel

from config import DASHBOARD_URL
from exam_engine.models.session_state import SessionStatus
from exam_engine.services.session_controller import ExamSession
from exam_engine.views.components import question_card as qcard
from exam_engine.views.components import sidebar as nav
from exam_engine.views.components import timer as tmr


class ExamScreen(BaseModel):
    status: SessionStatus
    attempt_id: str
    test_title: str
    meta: List[str]
    timer: Optional[tmr.TimerDisplay] = None
    rail: Optional[nav.ProgressRail] = None
    card: Optional[qcard.QuestionCard] = None
    prev_visible: bool = False
    next_label: str = "Next"
    submit_label: str = "Submit Test"
    submit_disabled: bool = False
    notice: Optional[str] = None
    saved_indicator: bool = False
    fullscreen_requested: bool = False
    alert: Optional[str] = None
    leave_warning: Optional[str] = None
    can_retry: bool = False
    redirect: Optional[str] = None


def render(session: ExamSession) -> ExamScreen:
    """현재 세션 상태로 시험 화면 기술을 만든다."""
    attempt = session.attempt
    status = session.status

    screen = ExamScreen(
        status=status,
        attempt_id=attempt.id if attempt else "",
        test_title=attempt.test_title if attempt else "",
        meta=[
            f"{len(session.questions)} Questions",
            f"{attempt.duration_minutes} Minutes",
        ] if attempt else [],
        alert=session.alert,
        leave_warning=session.leave_warning,
        can_retry=session.can_retry,
    )

    if status is SessionStatus.COMPLETED:
        screen.redirect = DASHBOARD_URL
        return screen
    if session.navigation is None:
        # 불러오기 실패
        screen.redirect = DASHBOARD_URL
        return screen

    navigation = session.navigation
    screen.timer = tmr.render(session.timer.reading())
    screen.rail = nav.render(navigation.questions, navigation.answered_flags(), navigation.index)
    screen.card = qcard.render(
        question=navigation.current,
        question_number=navigation.index + 1,
        total=navigation.total,
        widget=session.render_current(),
    )
    screen.prev_visible = not navigation.is_first
    screen.next_label = "Finish" if navigation.is_last else "Next"

    if status is SessionStatus.SUBMITTING:
        screen.submit_label = "Submitting…"
        screen.submit_disabled = True
    elif status is not SessionStatus.ACTIVE and not session.can_retry:
        screen.submit_disabled = True

    notice = session.proctoring.active_notice()
    screen.notice = notice.message if notice else None
    screen.saved_indicator = session.autosave.indicator_visible()
    screen.fullscreen_requested = (
        session.proctoring.config.fullscreen_required and status is SessionStatus.ACTIVE
    )
    return screen
