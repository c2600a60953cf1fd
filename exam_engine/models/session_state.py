"""
models/session_state.py

시험 세션 진행 상태 관련 모델.
Pydantic BaseModel 기반 — 직렬화/역직렬화 및 타입 안전성 확보.
UI 코드 없음.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class SessionStatus(str, Enum):
    """
    세션 상태 머신.

    LOADING → ACTIVE → {EXPIRED, SUBMITTING} → {COMPLETED, ERROR}
    """

    LOADING = "loading"
    ACTIVE = "active"
    EXPIRED = "expired"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    ERROR = "error"


class SubmitTrigger(str, Enum):
    MANUAL = "manual"
    TIMEOUT = "timeout"


class EventType(str, Enum):
    """감독 이벤트 유형."""

    TAB_SWITCH = "tab_switch"
    CLIPBOARD_BLOCKED = "clipboard_blocked"
    FULLSCREEN_EXIT = "fullscreen_exit"


class ProctoringEvent(BaseModel):
    """
    감독 이벤트 로그 한 줄. 추가만 되고 수정되지 않는다.

    type 은 저장된 로그 복원 시 알 수 없는 값도 보존하기 위해 문자열로 둔다.
    """

    type: str
    details: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime

    model_config = {"frozen": True}

    @field_validator("type", mode="before")
    @classmethod
    def enum_to_value(cls, v: Any) -> Any:
        return v.value if isinstance(v, Enum) else v

    @field_validator("details", mode="before")
    @classmethod
    def default_details(cls, v: Any) -> Any:
        return v if isinstance(v, dict) else {}

    @field_validator("timestamp")
    @classmethod
    def ensure_timezone(cls, v: datetime) -> datetime:
        return v if v.tzinfo is not None else v.replace(tzinfo=timezone.utc)


class Notice(BaseModel):
    """잠시 표시되었다가 사라지는 안내 문구."""

    message: str
    expires_at: datetime

    def visible(self, now: datetime) -> bool:
        return now < self.expires_at


class ProgressSnapshot(BaseModel):
    """
    자동 저장 / 제출 요청 본문.

    {answers, tab_switches, copy_attempts, suspicious_activity}
    필드 이름은 백엔드 계약이므로 바꾸지 않는다.
    """

    answers: Dict[str, Any] = Field(default_factory=dict)
    tab_switches: int = 0
    copy_attempts: int = 0
    # 복원된 원본 항목 + 새 이벤트(JSON dict). 원본 항목은 해석하지 않고 그대로 보낸다.
    suspicious_activity: List[Any] = Field(default_factory=list)

    def to_body(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class SubmissionResult(BaseModel):
    """백엔드 채점 결과. 세션은 읽기만 한다."""

    score: float = 0.0
    max_score: float = 0.0
    percentage: float = 0.0
    passed: bool = False
    time_spent_seconds: Optional[int] = None
    message: Optional[str] = None

    def summary(self) -> str:
        """제출 완료 안내 문구."""
        status = "Passed" if self.passed else "Not Passed"
        return (
            "Test submitted successfully!\n\n"
            f"Your score: {_fmt(self.score)}/{_fmt(self.max_score)} ({self.percentage:.2f}%)\n"
            f"Status: {status}"
        )


def _fmt(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:g}"
