"""
services/exam_service.py

채점 결과 요약 로직.
순수 Python 함수로 구성 — UI 코드, 전역 상태 변경 없음.
점수 자체는 백엔드가 계산하므로 여기서는 집계와 표시용 계산만 한다.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel

from exam_engine.models.attempt_model import CompletedAttempt
from exam_engine.models.question_model import Question

STATUS_CORRECT = "correct"
STATUS_INCORRECT = "incorrect"
STATUS_MANUAL = "manual"

FILTERS = ("all", STATUS_CORRECT, STATUS_INCORRECT)


class ResultSummary(BaseModel):
    score: float
    max_score: float
    percentage: float
    passed: bool
    total: int
    correct_count: int
    incorrect_count: int
    pending_count: int
    unanswered_count: int
    time_spent: str


def answer_status(is_correct: Optional[bool]) -> str:
    """
    is_correct 3상태를 리뷰 상태로 바꾼다.

    True → correct, False → incorrect, None → manual (수동 채점 대기).
    """
    if is_correct is True:
        return STATUS_CORRECT
    if is_correct is False:
        return STATUS_INCORRECT
    return STATUS_MANUAL


def matches_filter(status: str, filter_name: str) -> bool:
    """
    리뷰 필터 적용.

    - all       : 전부
    - correct   : 정답만
    - incorrect : 오답만 (수동 채점 대기는 제외)
    """
    if filter_name not in FILTERS:
        raise ValueError(f"알 수 없는 필터: {filter_name}")
    return filter_name == "all" or status == filter_name


def is_passed(percentage: float, passing_score: float) -> bool:
    return percentage >= passing_score


def format_duration(seconds: int) -> str:
    """소요 시간 표시 (예: 725 → '12m 5s')."""
    seconds = max(0, int(seconds))
    return f"{seconds // 60}m {seconds % 60}s"


def count_statuses(questions: List[Question], completed: CompletedAttempt) -> Dict[str, int]:
    counts = {STATUS_CORRECT: 0, STATUS_INCORRECT: 0, STATUS_MANUAL: 0}
    for q in questions:
        counts[answer_status(completed.graded(q.id).is_correct)] += 1
    return counts


def summarize(completed: CompletedAttempt, questions: Optional[List[Question]] = None) -> ResultSummary:
    """
    완료된 응시의 결과 요약을 만든다.

    Args:
        completed: 백엔드가 내려준 완료 응시
        questions: 문항 목록 (생략 시 completed.questions)

    Returns:
        ResultSummary. 합격 여부는 percentage >= passing_score.
    """
    questions = completed.questions if questions is None else questions
    counts = count_statuses(questions, completed)
    unanswered = sum(
        1 for q in questions
        if completed.graded(q.id).student_answer in (None, "", [])
    )
    return ResultSummary(
        score=completed.score,
        max_score=completed.max_score,
        percentage=round(completed.percentage, 1),
        passed=is_passed(completed.percentage, completed.passing_score),
        total=len(questions),
        correct_count=counts[STATUS_CORRECT],
        incorrect_count=counts[STATUS_INCORRECT],
        pending_count=counts[STATUS_MANUAL],
        unanswered_count=unanswered,
        time_spent=format_duration(completed.time_spent_seconds),
    )
