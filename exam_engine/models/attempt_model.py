"""
models/attempt_model.py

응시(Attempt) 모델과 백엔드 응답 페이로드 모델.

- Attempt            : 진행 중 응시 정보 (시작 시각, 제한 시간, 감독 설정, 저장된 진행 상황)
- AttemptPayload     : GET attempt(id) 응답 전체 {attempt, questions}
- GradedAnswer       : 채점 완료 답안 {student_answer, is_correct, earned_marks}
- CompletedAttempt   : 응시 완료 후 리뷰용 응답
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from exam_engine.models.question_model import Question


def _as_utc(value: datetime) -> datetime:
    # 타임존 없는 시각은 UTC로 간주
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ProctoringConfig(BaseModel):
    """응시별 감독 설정 (세 토글은 서로 독립)."""

    block_copy_paste: bool = True
    track_tab_switches: bool = True
    fullscreen_required: bool = False


class Attempt(BaseModel):
    """
    진행 중인 응시 한 건.

    Attributes:
        id:                  응시 ID
        test_title:          시험 제목
        duration_minutes:    제한 시간 (분)
        started_at:          응시 시작 시각
        is_completed:        제출 완료 여부
        proctoring:          감독 설정
        answers:             이전에 저장된 답안 (복원용, 검증 전 원본)
        tab_switches:        저장된 탭 전환 횟수
        copy_attempts:       저장된 복사/붙여넣기 시도 횟수
        suspicious_activity: 저장된 감독 이벤트 로그
    """

    id: str
    test_title: str = ""
    duration_minutes: int = Field(..., ge=0)
    started_at: datetime
    is_completed: bool = False
    proctoring: ProctoringConfig = Field(default_factory=ProctoringConfig)
    answers: Dict[str, Any] = Field(default_factory=dict)
    tab_switches: int = Field(default=0, ge=0)
    copy_attempts: int = Field(default=0, ge=0)
    suspicious_activity: List[Any] = Field(default_factory=list)

    @field_validator("started_at")
    @classmethod
    def ensure_timezone(cls, v: datetime) -> datetime:
        return _as_utc(v)

    @field_validator("answers", mode="before")
    @classmethod
    def default_answers(cls, v: Any) -> Any:
        if not isinstance(v, dict):
            return {}
        return {str(k): val for k, val in v.items()}

    @field_validator("tab_switches", "copy_attempts", mode="before")
    @classmethod
    def default_counter(cls, v: Any) -> Any:
        return 0 if v in (None, "") else v

    @field_validator("suspicious_activity", mode="before")
    @classmethod
    def default_activity(cls, v: Any) -> Any:
        # 저장된 로그는 해석할 수 없는 항목까지 그대로 되돌려 보낸다
        return v if isinstance(v, list) else []

    @property
    def deadline(self) -> datetime:
        """deadline = started_at + duration_minutes."""
        return self.started_at + timedelta(minutes=self.duration_minutes)

    @classmethod
    def from_backend(cls, attempt_id: str, raw: Dict[str, Any]) -> "Attempt":
        """
        백엔드 attempt 객체를 Attempt로 변환한다.

        감독 설정 기본값은 백엔드 규칙을 따른다:
        block_copy_paste / track_tab_switches 는 false 가 아니면 켜짐,
        fullscreen_required 는 true 일 때만 켜짐.
        """
        proctoring = ProctoringConfig(
            block_copy_paste=raw.get("block_copy_paste") is not False,
            track_tab_switches=raw.get("track_tab_switches") is not False,
            fullscreen_required=raw.get("fullscreen_required") is True,
        )
        return cls(
            id=str(raw.get("id") or attempt_id),
            test_title=raw.get("test_title") or "",
            duration_minutes=raw.get("duration_minutes"),
            started_at=raw.get("started_at"),
            is_completed=bool(raw.get("is_completed")),
            proctoring=proctoring,
            answers=raw.get("answers"),
            tab_switches=raw.get("tab_switches"),
            copy_attempts=raw.get("copy_attempts"),
            suspicious_activity=raw.get("suspicious_activity"),
        )


class AttemptPayload(BaseModel):
    """GET attempt(id) 응답: 응시 정보 + 문항 목록."""

    attempt: Attempt
    questions: List[Question] = Field(default_factory=list)


class GradedAnswer(BaseModel):
    """
    채점된 답안 한 건.

    is_correct 는 3상태: True(정답) / False(오답) / None(수동 채점 대기).
    """

    student_answer: Any = None
    is_correct: Optional[bool] = None
    earned_marks: float = 0.0

    @field_validator("earned_marks", mode="before")
    @classmethod
    def default_marks(cls, v: Any) -> Any:
        return 0.0 if v in (None, "") else v


class CompletedAttempt(BaseModel):
    """응시 완료 후 리뷰 화면에 쓰이는 응시 정보."""

    id: str
    test_title: str = ""
    student_name: Optional[str] = None
    subject_name: Optional[str] = None
    score: float = 0.0
    max_score: float = 0.0
    percentage: float = 0.0
    passing_score: float = 0.0
    time_spent_seconds: int = 0
    submitted_at: Optional[datetime] = None
    answers: Dict[str, GradedAnswer] = Field(default_factory=dict)
    questions: List[Question] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def fill_defaults(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for key in ("score", "max_score", "percentage", "passing_score", "time_spent_seconds"):
            if data.get(key) in (None, ""):
                data.pop(key, None)
        answers = data.get("answers")
        if isinstance(answers, dict):
            # 진행 중 원본 답안(dict 아님)이 섞여 있으면 채점 전 답안으로 감싼다
            data["answers"] = {
                str(k): v if isinstance(v, dict) else {"student_answer": v}
                for k, v in answers.items()
            }
        else:
            data["answers"] = {}
        return data

    def graded(self, question_id: str) -> GradedAnswer:
        return self.answers.get(question_id) or GradedAnswer()
