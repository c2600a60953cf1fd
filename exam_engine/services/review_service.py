"""
services/review_service.py

제출 후 리뷰 재구성.

저장된 학생 답안과 정답을 문항 유형 레지스트리의 리뷰 모드로 나란히 비교한다.
문항 상태(정답/오답/수동 채점 대기)는 백엔드 채점 결과 is_correct 를 따르고,
보기·빈칸·위치별 표시는 레지스트리의 compare 결과를 따른다.
"""

import logging
from typing import List, Optional

from pydantic import BaseModel, Field

from exam_engine.models.attempt_model import CompletedAttempt
from exam_engine.models.question_model import QuestionType
from exam_engine.services import question_types
from exam_engine.services.exam_service import (
    ResultSummary,
    answer_status,
    matches_filter,
    summarize,
)
from exam_engine.views.widgets import ReviewWidget

logger = logging.getLogger(__name__)


class ReviewItem(BaseModel):
    number: int
    question_id: str
    question_type: QuestionType
    question_text: str
    media_url: Optional[str] = None
    status: str
    earned_marks: float
    marks: float
    widget: ReviewWidget
    fraction: float = Field(0.0, description="위치별 일치 비율 (부분 점수 참고용)")


class AttemptReview(BaseModel):
    attempt_id: str
    test_title: str
    student_name: Optional[str] = None
    subject_name: Optional[str] = None
    filter: str = "all"
    summary: ResultSummary
    items: List[ReviewItem] = Field(default_factory=list)


def build_review(completed: CompletedAttempt, filter_name: str = "all") -> AttemptReview:
    """
    완료된 응시의 문항별 리뷰를 만든다.

    Args:
        completed:   백엔드가 내려준 완료 응시 (문항에 correct_answer 포함)
        filter_name: all / correct / incorrect

    Returns:
        AttemptReview. 번호는 필터와 관계없이 원래 문항 순서 기준.
    """
    items: List[ReviewItem] = []
    for number, question in enumerate(completed.questions, start=1):
        graded = completed.graded(question.id)
        status = answer_status(graded.is_correct)
        if not matches_filter(status, filter_name):
            continue

        strategy = question_types.get_strategy(question.question_type)
        widget = strategy.render_review(question, graded.student_answer, question.correct_answer)
        comparison = strategy.compare(question, graded.student_answer, question.correct_answer)
        items.append(ReviewItem(
            number=number,
            question_id=question.id,
            question_type=question.question_type,
            question_text=question.question_text,
            media_url=question.media_url,
            status=status,
            earned_marks=graded.earned_marks,
            marks=question.marks,
            widget=widget,
            fraction=comparison.fraction,
        ))

    logger.debug(f"리뷰 생성: 응시 {completed.id}, 필터 {filter_name}, {len(items)}문항")
    return AttemptReview(
        attempt_id=completed.id,
        test_title=completed.test_title,
        student_name=completed.student_name,
        subject_name=completed.subject_name,
        filter=filter_name,
        summary=summarize(completed),
        items=items,
    )
