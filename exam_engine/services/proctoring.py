"""
services/proctoring.py

감독 모니터.

응시별 세 가지 독립 설정:
  - 포커스 추적   : 화면 숨김 / 창 blur → tab_switch (1.5초 내 중복 신호는 한 번으로)
  - 클립보드 차단 : copy / cut / paste 차단 → clipboard_blocked
  - 전체화면 강제 : 시작 시 전체화면 요청, 이탈 시 fullscreen_exit 기록 후 재요청

어떤 위반도 오류가 아니다. 카운터와 이벤트 로그를 쌓고 잠깐 보이는 안내만 띄운다.
카운터는 줄어들지 않고, 로그는 추가만 되며 시각 순서를 지킨다.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional

from pydantic import ValidationError

from config import NOTICE_SECONDS, TAB_SWITCH_DEBOUNCE
from exam_engine.models.attempt_model import ProctoringConfig
from exam_engine.models.session_state import EventType, Notice, ProctoringEvent

logger = logging.getLogger(__name__)

CLIPBOARD_ACTIONS = ("copy", "cut", "paste")

TAB_SWITCH_NOTICE = "Tab switching is monitored during this test."
CLIPBOARD_NOTICE = "Copy/paste is disabled during this test."
FULLSCREEN_NOTICE = "Fullscreen is required. Please return to fullscreen."
FULLSCREEN_DENIED_NOTICE = "Please enable fullscreen to continue this test."


class ProctoringMonitor:
    def __init__(
        self,
        config: ProctoringConfig,
        clock: Callable[[], datetime],
        tab_switches: int = 0,
        copy_attempts: int = 0,
        events: Optional[Iterable[Any]] = None,
        debounce_seconds: float = TAB_SWITCH_DEBOUNCE,
        notice_seconds: float = NOTICE_SECONDS,
        request_fullscreen: Optional[Callable[[], None]] = None,
    ):
        self.config = config
        self._clock = clock
        self.tab_switches = max(0, int(tab_switches))
        self.copy_attempts = max(0, int(copy_attempts))
        # 복원된 원본 항목은 손대지 않고 보관, 새 이벤트만 _events 에 쌓는다
        self._restored: List[Any] = list(events or [])
        self._restored_events: List[ProctoringEvent] = _parse_events(self._restored)
        self._events: List[ProctoringEvent] = []
        self.debounce_seconds = debounce_seconds
        self.notice_seconds = notice_seconds
        self._request_fullscreen = request_fullscreen
        self._last_tab_switch_at: Optional[datetime] = None
        self._notice: Optional[Notice] = None
        self.fullscreen_requests = 0
        self.completed = False

    # ── 수명 ──────────────────────────────────────────────────────────────

    def start(self) -> None:
        if self.config.fullscreen_required:
            self.request_fullscreen()

    def stop(self) -> None:
        """제출 완료 후에는 전체화면 이탈을 기록하지 않는다."""
        self.completed = True

    # ── 신호 처리 ─────────────────────────────────────────────────────────

    def on_visibility_change(self, hidden: bool) -> bool:
        if not hidden:
            return False
        return self._record_tab_switch("visibility")

    def on_window_blur(self) -> bool:
        return self._record_tab_switch("blur")

    def on_clipboard(self, action: str) -> bool:
        """
        클립보드 동작 처리.

        Returns:
            True 이면 프런트엔드가 기본 동작을 막아야 한다.
        """
        if not self.config.block_copy_paste or self.completed:
            return False
        if action not in CLIPBOARD_ACTIONS:
            raise ValueError(f"알 수 없는 클립보드 동작: {action}")
        self.copy_attempts += 1
        self.record(EventType.CLIPBOARD_BLOCKED, {"action": action})
        self.show_notice(CLIPBOARD_NOTICE)
        return True

    def on_fullscreen_change(self, is_fullscreen: bool) -> bool:
        if is_fullscreen or not self.config.fullscreen_required or self.completed:
            return False
        self.record(EventType.FULLSCREEN_EXIT, {})
        self.show_notice(FULLSCREEN_NOTICE)
        self.request_fullscreen()
        return True

    def on_fullscreen_denied(self) -> None:
        self.show_notice(FULLSCREEN_DENIED_NOTICE)

    def _record_tab_switch(self, source: str) -> bool:
        if not self.config.track_tab_switches or self.completed:
            return False
        now = self._clock()
        if (
            self._last_tab_switch_at is not None
            and now - self._last_tab_switch_at < timedelta(seconds=self.debounce_seconds)
        ):
            return False
        self._last_tab_switch_at = now
        self.tab_switches += 1
        self.record(EventType.TAB_SWITCH, {"source": source})
        self.show_notice(TAB_SWITCH_NOTICE)
        return True

    # ── 로그 / 안내 ───────────────────────────────────────────────────────

    def record(self, event_type: EventType, details: Optional[Dict[str, Any]] = None) -> ProctoringEvent:
        now = self._clock()
        latest = self._latest_timestamp()
        if latest is not None and now < latest:
            # 시계가 뒤로 가도 새 이벤트는 기존 로그보다 앞서지 않는다
            now = latest
        event = ProctoringEvent(type=event_type, details=details or {}, timestamp=now)
        self._events.append(event)
        logger.info(f"감독 이벤트: {event.type} {event.details}")
        return event

    def request_fullscreen(self) -> None:
        self.fullscreen_requests += 1
        if self._request_fullscreen is not None:
            self._request_fullscreen()

    def show_notice(self, message: str) -> Notice:
        self._notice = Notice(
            message=message,
            expires_at=self._clock() + timedelta(seconds=self.notice_seconds),
        )
        return self._notice

    def active_notice(self) -> Optional[Notice]:
        if self._notice is not None and self._notice.visible(self._clock()):
            return self._notice
        return None

    def _latest_timestamp(self) -> Optional[datetime]:
        if self._events:
            return self._events[-1].timestamp
        if self._restored_events:
            return max(e.timestamp for e in self._restored_events)
        return None

    @property
    def events(self) -> List[ProctoringEvent]:
        """해석 가능한 복원 이벤트 + 이번 세션에서 기록한 이벤트."""
        return self._restored_events + self._events

    def log(self) -> List[Any]:
        """
        백엔드로 보낼 전체 로그.

        복원된 항목은 받은 그대로(해석 실패 항목 포함) 앞에 두고,
        새 이벤트를 JSON 형태로 뒤에 붙인다. 기존 항목은 바꾸지도 빼지도 않는다.
        """
        return list(self._restored) + [e.model_dump(mode="json") for e in self._events]


def _parse_events(raw: List[Any]) -> List[ProctoringEvent]:
    events: List[ProctoringEvent] = []
    for item in raw:
        try:
            events.append(ProctoringEvent.model_validate(item))
        except ValidationError as e:
            logger.warning(f"감독 로그 항목 해석 실패, 원본 그대로 유지: {e.errors()[0].get('msg')}")
    return events
