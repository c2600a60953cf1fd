"""
views/components/question_card.py

단일 문항 카드 컴포넌트.
헤더(번호/배점) + 발문 + 이미지 + 유형별 입력 위젯.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from exam_engine.models.question_model import Question, QuestionType
from exam_engine.views.widgets import InputWidget


class QuestionCard(BaseModel):
    question_id: str
    question_type: QuestionType
    header: str
    marks_label: str
    question_text: str
    media_url: Optional[str] = None
    widget: InputWidget


def _marks_label(marks: float) -> str:
    value = int(marks) if float(marks).is_integer() else marks
    return f"{value} marks"


def render(question: Question, question_number: int, total: int, widget) -> QuestionCard:
    """
    문항 카드를 만든다.

    Args:
        question:        표시할 문항
        question_number: 1부터 시작하는 문항 번호
        total:           전체 문항 수
        widget:          세션이 만든 입력 위젯 (초안 또는 저장된 답안 반영)
    """
    return QuestionCard(
        question_id=question.id,
        question_type=question.question_type,
        header=f"Question {question_number} of {total}",
        marks_label=_marks_label(question.marks),
        question_text=question.question_text,
        media_url=question.media_url,
        widget=widget,
    )
