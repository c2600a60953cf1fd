"""
views/components/sidebar.py

문항 번호 진행 레일 컴포넌트.
각 번호 버튼은 해당 문항으로 바로 이동(jump)한다.
"""

from __future__ import annotations

from typing import List, Sequence

from pydantic import BaseModel

from exam_engine.models.question_model import Question


class RailButton(BaseModel):
    index: int
    label: str
    current: bool
    answered: bool
    css_class: str


class ProgressRail(BaseModel):
    buttons: List[RailButton]
    answered_count: int
    total: int
    progress: float
    unanswered_count: int


def render(questions: Sequence[Question], answered: Sequence[bool], current_index: int) -> ProgressRail:
    """
    진행 레일을 만든다.

    색상 코딩:
      - 현재 문항: current
      - 답한 문항: answered
      - 미답 문항: unanswered
    """
    total = len(questions)
    buttons = []
    for i, _ in enumerate(questions):
        classes = ["nav-question"]
        if i == current_index:
            classes.append("current")
        classes.append("answered" if answered[i] else "unanswered")
        buttons.append(RailButton(
            index=i,
            label=str(i + 1),
            current=i == current_index,
            answered=answered[i],
            css_class=" ".join(classes),
        ))

    answered_count = sum(1 for a in answered if a)
    return ProgressRail(
        buttons=buttons,
        answered_count=answered_count,
        total=total,
        progress=answered_count / total if total > 0 else 0.0,
        unanswered_count=total - answered_count,
    )
