"""
services/errors.py

시험 세션 엔진 예외 분류.

- LoadError        : 응시 불러오기 실패 (항상 치명적, 대시보드로 이동)
- SaveError        : 자동 저장 실패 (로그만 남기고 다음 주기에 재시도)
- SubmitError      : 제출 실패 (사용자에게 알리고 재시도 허용, 답안 유지)
- ValidationWarning: 미응답 문항 경고 (예외가 아님, 반환값으로 전달)
"""

from config import DASHBOARD_URL


class ExamEngineError(Exception):
    """엔진 예외의 기반 클래스."""


class LoadError(ExamEngineError):
    """응시 정보를 불러오지 못했거나 응시를 시작할 수 없음."""

    NOT_FOUND = "not_found"
    INVALID = "invalid"
    EMPTY = "empty"
    EXPIRED = "expired"
    COMPLETED = "completed"

    def __init__(self, message: str, reason: str = INVALID, redirect: str = DASHBOARD_URL):
        super().__init__(message)
        self.reason = reason
        self.redirect = redirect


class SaveError(ExamEngineError):
    """자동 저장 요청 실패."""


class SubmitError(ExamEngineError):
    """제출 요청 실패. 재시도 가능."""


class AnswerValidationError(ExamEngineError, ValueError):
    """답안 값 또는 위젯 상태가 문항 유형과 맞지 않음."""


class SessionStateError(ExamEngineError, RuntimeError):
    """현재 세션 상태에서 허용되지 않는 동작."""


class ValidationWarning(UserWarning):
    """
    수동 제출 시 미응답 문항이 있을 때의 확인 경고.
    raise 하지 않고 반환하며, 사용자가 확인하면 그대로 제출한다.
    """

    def __init__(self, unanswered: int):
        noun = "question" if unanswered == 1 else "questions"
        super().__init__(f"You have {unanswered} unanswered {noun}.")
        self.unanswered = unanswered

    @property
    def message(self) -> str:
        return str(self)
