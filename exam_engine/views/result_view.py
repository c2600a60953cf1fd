"""
views/result_view.py — 응시 결과 / 리뷰 화면

표시 내용:
  - 점수 (획득 / 만점), 백분율, 합격 / 불합격 배지
  - 통계 요약 (정답 수, 소요 시간, 수동 채점 대기 수)
  - 필터 버튼 (전체 / 정답 / 오답)
  - 문항별 리뷰 카드 (상태 배지 + 배점 + 유형별 비교 위젯)
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel

from exam_engine.services.exam_service import (
    FILTERS,
    STATUS_CORRECT,
    STATUS_INCORRECT,
)
from exam_engine.services.review_service import AttemptReview, ReviewItem
from exam_engine.views.widgets import ReviewWidget

_STATUS_TEXT = {
    STATUS_CORRECT: "Correct",
    STATUS_INCORRECT: "Incorrect",
}
_STATUS_ICON = {
    STATUS_CORRECT: "pass",
    STATUS_INCORRECT: "fail",
}


class StatCard(BaseModel):
    label: str
    value: str


class FilterButton(BaseModel):
    name: str
    label: str
    active: bool


class ReviewCard(BaseModel):
    number_label: str
    status: str
    status_text: str
    status_icon: str
    marks_label: str
    question_text: str
    media_url: Optional[str] = None
    widget: ReviewWidget


class ResultScreen(BaseModel):
    title: str
    badge: str
    badge_class: str
    score_label: str
    percentage_label: str
    stats: List[StatCard]
    filters: List[FilterButton]
    cards: List[ReviewCard]
    empty_message: Optional[str] = None


def _num(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:g}"


def _card(item: ReviewItem) -> ReviewCard:
    return ReviewCard(
        number_label=f"Question {item.number}",
        status=item.status,
        status_text=_STATUS_TEXT.get(item.status, "Manual Grading"),
        status_icon=_STATUS_ICON.get(item.status, "manual"),
        marks_label=f"{_num(item.earned_marks)} / {_num(item.marks)} marks",
        question_text=item.question_text,
        media_url=item.media_url,
        widget=item.widget,
    )


def render(review: AttemptReview) -> ResultScreen:
    """리뷰 결과를 결과 화면 기술로 바꾼다."""
    summary = review.summary
    title = review.test_title
    if review.student_name:
        title = f"{review.student_name} - {review.test_title}"

    stats = [
        StatCard(label="Correct", value=f"{summary.correct_count} / {summary.total}"),
        StatCard(label="Time", value=summary.time_spent),
    ]
    if summary.pending_count:
        stats.append(StatCard(label="Manual Grading", value=str(summary.pending_count)))

    return ResultScreen(
        title=title,
        badge="Passed" if summary.passed else "Failed",
        badge_class="passed" if summary.passed else "failed",
        score_label=f"{_num(summary.score)} / {_num(summary.max_score)}",
        percentage_label=f"{summary.percentage:.1f}%",
        stats=stats,
        filters=[
            FilterButton(name=name, label=name.capitalize(), active=name == review.filter)
            for name in FILTERS
        ],
        cards=[_card(item) for item in review.items],
        empty_message=None if review.items else "No questions match the current filter.",
    )
