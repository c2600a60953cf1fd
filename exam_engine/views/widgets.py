"""
views/widgets.py

화면 위젯 기술(description) 모델.

엔진은 HTML을 만들지 않고 위젯 기술만 반환한다.
웹 프런트엔드, 테스트 하네스 등 어떤 화면이든 같은 기술을 그릴 수 있다.
입력 위젯은 프런트엔드가 상태(selected / value / 순서)를 바꿔 그대로 되돌려 보낸다.
"""

from __future__ import annotations

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field


# ── 입력 위젯 (응시 중) ─────────────────────────────────────────────────────

class ChoiceOption(BaseModel):
    index: int
    label: str
    selected: bool = False


class ChoiceWidget(BaseModel):
    """라디오(단일 선택) 또는 체크박스(복수 선택) 목록."""

    kind: Literal["choice"] = "choice"
    name: str
    multiple: bool = False
    options: List[ChoiceOption] = Field(default_factory=list)


class TextWidget(BaseModel):
    kind: Literal["text"] = "text"
    name: str
    value: str = ""
    placeholder: str = "Type your answer here..."


class BlankInput(BaseModel):
    index: int
    label: str
    value: str = ""
    placeholder: str = ""


class BlanksWidget(BaseModel):
    kind: Literal["blanks"] = "blanks"
    name: str
    blanks: List[BlankInput] = Field(default_factory=list)


class OrderingItem(BaseModel):
    item_index: int
    position: int
    text: str


class OrderingWidget(BaseModel):
    """items 의 나열 순서가 곧 답안 순서다."""

    kind: Literal["ordering"] = "ordering"
    name: str
    items: List[OrderingItem] = Field(default_factory=list)
    hint: str = "Drag items to reorder them"


class MatchingRow(BaseModel):
    pair_index: int
    left: str
    selected: Optional[int] = None


class MatchingWidget(BaseModel):
    kind: Literal["matching"] = "matching"
    name: str
    rows: List[MatchingRow] = Field(default_factory=list)
    choices: List[str] = Field(default_factory=list)
    placeholder: str = "Select match..."


class UnsupportedWidget(BaseModel):
    """알 수 없는 유형의 문항. 입력란 없이 안내 문구만 보여준다."""

    kind: Literal["unsupported"] = "unsupported"
    name: str
    type_tag: str = ""
    message: str = "Unsupported question type"


InputWidget = Annotated[
    Union[ChoiceWidget, TextWidget, BlanksWidget, OrderingWidget, MatchingWidget, UnsupportedWidget],
    Field(discriminator="kind"),
]


# ── 리뷰 위젯 (채점 결과) ───────────────────────────────────────────────────

class OptionReview(BaseModel):
    index: int
    label: str
    student_choice: bool = False
    correct_choice: bool = False
    marker: Literal["is-correct", "is-wrong", "is-answer", "is-empty"] = "is-empty"


class ChoiceReview(BaseModel):
    kind: Literal["choice_review"] = "choice_review"
    options: List[OptionReview] = Field(default_factory=list)
    is_correct: bool = False


class TextReview(BaseModel):
    kind: Literal["text_review"] = "text_review"
    student_answer: Optional[str] = None
    display: str = "Not answered"
    accepted: List[str] = Field(default_factory=list)
    is_correct: bool = False


class BlankReview(BaseModel):
    index: int
    label: str
    student: str = ""
    correct: str = ""
    is_correct: bool = False


class BlanksReview(BaseModel):
    kind: Literal["blanks_review"] = "blanks_review"
    blanks: List[BlankReview] = Field(default_factory=list)
    is_correct: bool = False


class OrderingReviewRow(BaseModel):
    position: int
    item_index: Optional[int] = None
    text: str = ""
    in_correct_position: bool = True


class OrderingReview(BaseModel):
    kind: Literal["ordering_review"] = "ordering_review"
    student_order: List[OrderingReviewRow] = Field(default_factory=list)
    correct_order: List[OrderingReviewRow] = Field(default_factory=list)
    is_correct: bool = False


class MatchingReviewRow(BaseModel):
    pair_index: int
    left: str
    student_match: Optional[int] = None
    student_text: str = "Not matched"
    correct_match: Optional[int] = None
    correct_text: str = ""
    is_correct: bool = False


class MatchingReview(BaseModel):
    kind: Literal["matching_review"] = "matching_review"
    rows: List[MatchingReviewRow] = Field(default_factory=list)
    is_correct: bool = False


class UnsupportedReview(BaseModel):
    kind: Literal["unsupported_review"] = "unsupported_review"
    type_tag: str = ""
    message: str = "Unsupported question type"
    student_answer: Optional[str] = None
    display: str = "Not answered"


ReviewWidget = Annotated[
    Union[
        ChoiceReview, TextReview, BlanksReview, OrderingReview, MatchingReview, UnsupportedReview,
    ],
    Field(discriminator="kind"),
]
