"""
models/question_model.py

시험 문항 모델.
백엔드 응답의 question 객체를 그대로 받아 검증한다 (필드 이름 유지).
정답(correct_answer)은 응시 완료 후 리뷰 조회 시에만 채워진다.
"""

import re
from enum import Enum
from typing import Any, List, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

BLANK_PLACEHOLDER = re.compile(r"___")


class QuestionType(str, Enum):
    """문항 유형 태그 (백엔드 question_type 값)."""

    SINGLE_CHOICE = "singlechoice"
    MULTIPLE_CHOICE = "multiplechoice"
    TRUE_FALSE = "truefalse"
    SHORT_ANSWER = "shortanswer"
    FILL_BLANKS = "fillblanks"
    ORDERING = "ordering"
    MATCHING = "matching"
    IMAGE_BASED = "imagebased"
    # 위 목록에 없는 태그 (예: essay). 원래 태그는 Question.type_tag 에 남는다.
    UNSUPPORTED = "unsupported"


class MatchingPair(BaseModel):
    """짝짓기 문항의 좌/우 항목 한 쌍."""

    left: str = ""
    right: str = ""


class Question(BaseModel):
    """
    시험 문항 모델
    Pydantic v2 적용
    """
    id: str = Field(
        ...,
        description="문항 ID. 답안지 키로 쓰이므로 문자열로 정규화한다."
    )
    question_type: QuestionType = Field(
        ...,
        description="문항 유형 태그"
    )
    type_tag: str = Field(
        "",
        description="백엔드가 보낸 원래 유형 태그"
    )
    question_text: str = Field(
        "",
        description="발문. 빈칸 채우기는 '___' 개수가 빈칸 수가 된다."
    )
    options: List[Union[MatchingPair, str]] = Field(
        default_factory=list,
        description="보기 / 순서 항목 / 짝짓기 쌍 목록"
    )
    marks: float = Field(
        1.0,
        ge=0,
        description="배점"
    )
    media_url: Optional[str] = Field(
        None,
        description="문항 이미지 URL"
    )
    order_number: Optional[int] = None
    correct_answer: Optional[Any] = Field(
        None,
        description="정답. 응시 완료 후에만 백엔드가 내려준다."
    )

    @model_validator(mode="before")
    @classmethod
    def tag_unknown_type(cls, data: Any) -> Any:
        """모르는 유형이어도 응시 전체를 거부하지 않고 UNSUPPORTED 로 받는다."""
        if not isinstance(data, dict):
            return data
        tag = data.get("question_type")
        if isinstance(tag, QuestionType):
            tag = tag.value
        data = dict(data)
        data["type_tag"] = "" if tag is None else str(tag)
        known = {t.value for t in QuestionType}
        if not isinstance(tag, str) or tag not in known:
            data["question_type"] = QuestionType.UNSUPPORTED
        return data

    @field_validator("id", mode="before")
    @classmethod
    def normalize_id(cls, v: Any) -> str:
        if v is None or v == "":
            raise ValueError("문항 ID가 비어 있습니다.")
        return str(v)

    @field_validator("options", mode="before")
    @classmethod
    def default_options(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("marks", mode="before")
    @classmethod
    def default_marks(cls, v: Any) -> Any:
        return 1.0 if v is None or v == "" else v

    @property
    def supported(self) -> bool:
        return self.question_type is not QuestionType.UNSUPPORTED

    @property
    def labels(self) -> List[str]:
        """보기 문자열 목록 (짝짓기 문항이면 좌측 항목)."""
        return [o.left if isinstance(o, MatchingPair) else o for o in self.options]

    @property
    def pairs(self) -> List[MatchingPair]:
        """짝짓기 쌍 목록. 문자열 보기는 좌측만 있는 쌍으로 취급."""
        return [
            o if isinstance(o, MatchingPair) else MatchingPair(left=o)
            for o in self.options
        ]

    @property
    def blank_count(self) -> int:
        return len(BLANK_PLACEHOLDER.findall(self.question_text))
