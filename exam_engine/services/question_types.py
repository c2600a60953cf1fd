"""
services/question_types.py

문항 유형 레지스트리.

문항 유형(8종 + 알 수 없는 유형)마다 전략 객체 하나가 대응하며, 각 전략은 두 쌍의 동작을 가진다.
  - 응시 중  : render_input(question, existing) -> 입력 위젯
               extract_answer(question, widget) -> 답안 값
  - 채점 후  : render_review(question, student, authoritative) -> 리뷰 위젯
               compare(question, student, authoritative) -> Comparison

답안 값 형태:
  singlechoice / imagebased : 보기 인덱스 (int)
  multiplechoice            : 정렬된 인덱스 리스트
  truefalse                 : bool
  shortanswer               : 앞뒤 공백 제거한 문자열
  fillblanks                : 빈칸 순서대로의 문자열 리스트
  ordering                  : 항목 인덱스 순열
  matching                  : 좌측 항목별 우측 인덱스 (미선택은 None)

validate() 는 값을 정규형으로 바꾸거나 AnswerValidationError 를 던진다.
리뷰 쪽은 저장된 값이 어떤 모양이든 그리되, 형태가 맞지 않으면 오답으로 본다.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel

from exam_engine.models.question_model import Question, QuestionType
from exam_engine.services.errors import AnswerValidationError
from exam_engine.services.interaction import identity_order, is_permutation
from exam_engine.views.widgets import (
    BlankInput,
    BlankReview,
    BlanksReview,
    BlanksWidget,
    ChoiceOption,
    ChoiceReview,
    ChoiceWidget,
    MatchingReview,
    MatchingReviewRow,
    MatchingRow,
    MatchingWidget,
    OptionReview,
    OrderingItem,
    OrderingReview,
    OrderingReviewRow,
    OrderingWidget,
    TextReview,
    TextWidget,
    UnsupportedReview,
    UnsupportedWidget,
)

logger = logging.getLogger(__name__)

NOT_MATCHED = "Not matched"
NOT_ANSWERED = "Not answered"


# ── 공용 헬퍼 ────────────────────────────────────────────────────────────────

def is_answered(value: Any) -> bool:
    """None, 빈 문자열, 빈 리스트는 미응답. 그 외(0, False 포함)는 응답."""
    if value is None:
        return False
    if isinstance(value, str) and value == "":
        return False
    if isinstance(value, (list, tuple)) and len(value) == 0:
        return False
    return True


def _as_index(value: Any) -> Optional[int]:
    """int 또는 숫자 문자열을 인덱스로. bool 은 인덱스가 아니다."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            return int(text)
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    return None


def _as_list(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    if value is None:
        return []
    return [value]


def _norm_text(value: Any) -> str:
    return "" if value is None else str(value).strip().lower()


def _option_marker(student_choice: bool, correct_choice: bool) -> str:
    if student_choice and correct_choice:
        return "is-correct"
    if student_choice:
        return "is-wrong"
    if correct_choice:
        return "is-answer"
    return "is-empty"


class Comparison(BaseModel):
    """
    학생 답안과 정답의 비교 결과.

    positions 는 위치별 채점 유형(빈칸/순서/짝짓기)에서만 채워지며,
    부분 점수 계산은 백엔드 몫이다.
    """

    is_correct: bool = False
    positions: Optional[List[bool]] = None

    @property
    def fraction(self) -> float:
        if self.positions:
            return sum(self.positions) / len(self.positions)
        return 1.0 if self.is_correct else 0.0


# ── 전략 기반 클래스 ─────────────────────────────────────────────────────────

class QuestionTypeStrategy(ABC):
    """문항 유형 하나의 입력/리뷰 동작 묶음."""

    question_type: QuestionType

    @abstractmethod
    def validate(self, question: Question, value: Any) -> Any:
        """값을 정규형으로 반환. None 은 미응답으로 그대로 통과."""

    @abstractmethod
    def render_input(self, question: Question, existing: Any = None):
        """입력 위젯 기술을 만든다. existing 은 이미 저장된 답안."""

    @abstractmethod
    def extract_answer(self, question: Question, widget) -> Any:
        """프런트엔드가 되돌려 보낸 위젯 상태에서 답안 값을 꺼낸다."""

    @abstractmethod
    def compare(self, question: Question, student: Any, authoritative: Any) -> Comparison:
        """학생 답안과 정답을 비교한다."""

    @abstractmethod
    def render_review(self, question: Question, student: Any, authoritative: Any):
        """학생 답안과 정답을 나란히 보여주는 리뷰 위젯 기술을 만든다."""

    # 공통 처리

    def input_name(self, question: Question) -> str:
        return f"question_{question.id}"

    def existing_or_none(self, question: Question, value: Any) -> Any:
        """저장된 답안이 형태에 맞지 않으면 미응답으로 취급해 그린다."""
        try:
            return self.validate(question, value)
        except AnswerValidationError:
            logger.debug(f"문항 {question.id}: 저장된 답안 형태 불일치 → 미응답으로 표시")
            return None

    def _expect_widget(self, question: Question, widget, widget_cls):
        if not isinstance(widget, widget_cls):
            raise AnswerValidationError(
                f"문항 {question.id}({self.question_type.value})에 맞지 않는 위젯입니다: "
                f"{getattr(widget, 'kind', type(widget).__name__)}"
            )
        if widget.name != self.input_name(question):
            raise AnswerValidationError(
                f"위젯 이름 불일치: {widget.name} (기대값 {self.input_name(question)})"
            )
        return widget

    def _check_index(self, question: Question, value: Any, size: int) -> int:
        index = _as_index(value)
        if index is None or not (0 <= index < size):
            raise AnswerValidationError(
                f"문항 {question.id}: 인덱스 {value!r} 이(가) 범위(0~{size - 1})를 벗어났습니다."
            )
        return index


# ── 선택형 ──────────────────────────────────────────────────────────────────

class SingleChoiceStrategy(QuestionTypeStrategy):
    question_type = QuestionType.SINGLE_CHOICE

    def validate(self, question, value):
        if value is None:
            return None
        return self._check_index(question, value, len(question.labels))

    def render_input(self, question, existing=None):
        selected = self.existing_or_none(question, existing)
        return ChoiceWidget(
            name=self.input_name(question),
            multiple=False,
            options=[
                ChoiceOption(index=i, label=label, selected=(i == selected))
                for i, label in enumerate(question.labels)
            ],
        )

    def extract_answer(self, question, widget):
        widget = self._expect_widget(question, widget, ChoiceWidget)
        chosen = [o.index for o in widget.options if o.selected]
        if len(chosen) > 1:
            raise AnswerValidationError(f"문항 {question.id}: 단일 선택 문항에 보기가 {len(chosen)}개 선택되었습니다.")
        return self.validate(question, chosen[0]) if chosen else None

    def compare(self, question, student, authoritative):
        s = _as_index(student)
        return Comparison(is_correct=s is not None and s == _as_index(authoritative))

    def render_review(self, question, student, authoritative):
        student_set = {_as_index(v) for v in _as_list(student)} - {None}
        correct_set = {_as_index(v) for v in _as_list(authoritative)} - {None}
        return ChoiceReview(
            options=_option_reviews(question.labels, student_set, correct_set),
            is_correct=self.compare(question, student, authoritative).is_correct,
        )


class ImageBasedStrategy(SingleChoiceStrategy):
    """이미지 문항. 이미지는 문항 카드가 media_url 로 그리고, 답은 단일 선택과 같다."""

    question_type = QuestionType.IMAGE_BASED


class MultipleChoiceStrategy(QuestionTypeStrategy):
    question_type = QuestionType.MULTIPLE_CHOICE

    def validate(self, question, value):
        if value is None:
            return None
        if not isinstance(value, (list, tuple)):
            raise AnswerValidationError(f"문항 {question.id}: 복수 선택 답안은 리스트여야 합니다.")
        size = len(question.labels)
        return sorted({self._check_index(question, v, size) for v in value})

    def render_input(self, question, existing=None):
        selected = set(self.existing_or_none(question, existing) or [])
        return ChoiceWidget(
            name=self.input_name(question),
            multiple=True,
            options=[
                ChoiceOption(index=i, label=label, selected=(i in selected))
                for i, label in enumerate(question.labels)
            ],
        )

    def extract_answer(self, question, widget):
        widget = self._expect_widget(question, widget, ChoiceWidget)
        return self.validate(question, [o.index for o in widget.options if o.selected])

    def compare(self, question, student, authoritative):
        # 빈 답안은 정답이 비어 있어도 정답이 아니다
        if not isinstance(student, (list, tuple)) or not is_answered(student):
            return Comparison(is_correct=False)
        student_set = {_as_index(v) for v in student}
        correct_set = {_as_index(v) for v in _as_list(authoritative)}
        return Comparison(is_correct=None not in student_set and student_set == correct_set)

    def render_review(self, question, student, authoritative):
        student_set = {_as_index(v) for v in _as_list(student)} - {None}
        correct_set = {_as_index(v) for v in _as_list(authoritative)} - {None}
        return ChoiceReview(
            options=_option_reviews(question.labels, student_set, correct_set),
            is_correct=self.compare(question, student, authoritative).is_correct,
        )


class TrueFalseStrategy(QuestionTypeStrategy):
    question_type = QuestionType.TRUE_FALSE

    LABELS = ("True", "False")

    def validate(self, question, value):
        if value is None:
            return None
        result = _as_bool(value)
        if result is None:
            raise AnswerValidationError(f"문항 {question.id}: 참/거짓 답안이 아닙니다: {value!r}")
        return result

    def render_input(self, question, existing=None):
        value = self.existing_or_none(question, existing)
        return ChoiceWidget(
            name=self.input_name(question),
            multiple=False,
            options=[
                ChoiceOption(index=0, label=self.LABELS[0], selected=value is True),
                ChoiceOption(index=1, label=self.LABELS[1], selected=value is False),
            ],
        )

    def extract_answer(self, question, widget):
        widget = self._expect_widget(question, widget, ChoiceWidget)
        chosen = [o.index for o in widget.options if o.selected]
        if not chosen:
            return None
        if len(chosen) > 1 or chosen[0] not in (0, 1):
            raise AnswerValidationError(f"문항 {question.id}: 참/거짓 선택이 올바르지 않습니다.")
        return chosen[0] == 0

    def compare(self, question, student, authoritative):
        s = _as_bool(student)
        return Comparison(is_correct=s is not None and s == _as_bool(authoritative))

    def render_review(self, question, student, authoritative):
        s = _as_bool(student)
        a = _as_bool(authoritative)
        options = []
        for index, (label, flag) in enumerate(zip(self.LABELS, (True, False))):
            options.append(OptionReview(
                index=index,
                label=label,
                student_choice=s is flag,
                correct_choice=a is flag,
                marker=_option_marker(s is flag, a is flag),
            ))
        return ChoiceReview(options=options, is_correct=self.compare(question, student, authoritative).is_correct)


def _option_reviews(labels: Sequence[str], student_set: set, correct_set: set) -> List[OptionReview]:
    return [
        OptionReview(
            index=i,
            label=label,
            student_choice=i in student_set,
            correct_choice=i in correct_set,
            marker=_option_marker(i in student_set, i in correct_set),
        )
        for i, label in enumerate(labels)
    ]


# ── 주관식 ──────────────────────────────────────────────────────────────────

class ShortAnswerStrategy(QuestionTypeStrategy):
    question_type = QuestionType.SHORT_ANSWER

    def validate(self, question, value):
        if value is None:
            return None
        if not isinstance(value, str):
            raise AnswerValidationError(f"문항 {question.id}: 단답형 답안은 문자열이어야 합니다.")
        return value.strip()

    def render_input(self, question, existing=None):
        return TextWidget(
            name=self.input_name(question),
            value=self.existing_or_none(question, existing) or "",
        )

    def extract_answer(self, question, widget):
        widget = self._expect_widget(question, widget, TextWidget)
        return self.validate(question, widget.value)

    def compare(self, question, student, authoritative):
        if not is_answered(student):
            return Comparison(is_correct=False)
        accepted = {_norm_text(a) for a in _as_list(authoritative)}
        return Comparison(is_correct=_norm_text(student) in accepted)

    def render_review(self, question, student, authoritative):
        text = None if not is_answered(student) else str(student)
        return TextReview(
            student_answer=text,
            display=text if text else NOT_ANSWERED,
            accepted=[str(a) for a in _as_list(authoritative)],
            is_correct=self.compare(question, student, authoritative).is_correct,
        )


class FillBlanksStrategy(QuestionTypeStrategy):
    """빈칸 수는 발문의 '___' 개수. 빈칸마다 대소문자/공백 무시 채점."""

    question_type = QuestionType.FILL_BLANKS

    def validate(self, question, value):
        if value is None:
            return None
        if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
            raise AnswerValidationError(f"문항 {question.id}: 빈칸 답안은 문자열 리스트여야 합니다.")
        if len(value) != question.blank_count:
            raise AnswerValidationError(
                f"문항 {question.id}: 빈칸 {question.blank_count}개에 답안 {len(value)}개"
            )
        return [v.strip() for v in value]

    def render_input(self, question, existing=None):
        values = self.existing_or_none(question, existing) or [""] * question.blank_count
        return BlanksWidget(
            name=self.input_name(question),
            blanks=[
                BlankInput(
                    index=i,
                    label=f"Blank {i + 1}:",
                    value=values[i],
                    placeholder=f"Answer for blank {i + 1}",
                )
                for i in range(question.blank_count)
            ],
        )

    def extract_answer(self, question, widget):
        widget = self._expect_widget(question, widget, BlanksWidget)
        ordered = sorted(widget.blanks, key=lambda b: b.index)
        if [b.index for b in ordered] != list(range(len(ordered))):
            raise AnswerValidationError(f"문항 {question.id}: 빈칸 인덱스가 연속적이지 않습니다.")
        return self.validate(question, [b.value for b in ordered])

    def compare(self, question, student, authoritative):
        correct = _as_list(authoritative)
        answers = student if isinstance(student, (list, tuple)) else []
        positions = [
            _norm_text(c) == _norm_text(answers[i] if i < len(answers) else "")
            for i, c in enumerate(correct)
        ]
        is_correct = (
            isinstance(student, (list, tuple))
            and any(_norm_text(a) for a in answers)
            and len(answers) == len(correct)
            and all(positions)
        )
        return Comparison(is_correct=is_correct, positions=positions)

    def render_review(self, question, student, authoritative):
        correct = _as_list(authoritative)
        answers = student if isinstance(student, (list, tuple)) else []
        result = self.compare(question, student, authoritative)
        blanks = []
        for i, c in enumerate(correct):
            value = answers[i] if i < len(answers) and answers[i] is not None else ""
            blanks.append(BlankReview(
                index=i,
                label=f"Blank {i + 1}",
                student=str(value),
                correct=str(c),
                is_correct=result.positions[i],
            ))
        return BlanksReview(blanks=blanks, is_correct=result.is_correct)


# ── 순서 배열 / 짝짓기 ──────────────────────────────────────────────────────

class OrderingStrategy(QuestionTypeStrategy):
    """미응답이면 원래 순서(항등 순열)로 시작한다."""

    question_type = QuestionType.ORDERING

    def validate(self, question, value):
        if value is None:
            return None
        if not isinstance(value, (list, tuple)):
            raise AnswerValidationError(f"문항 {question.id}: 순서 답안은 리스트여야 합니다.")
        order = [_as_index(v) for v in value]
        if None in order or not is_permutation(order, len(question.labels)):
            raise AnswerValidationError(f"문항 {question.id}: {list(value)} 은(는) 올바른 순열이 아닙니다.")
        return order

    def render_input(self, question, existing=None):
        items = question.labels
        order = self.existing_or_none(question, existing) or identity_order(len(items))
        return OrderingWidget(
            name=self.input_name(question),
            items=[
                OrderingItem(item_index=item_index, position=position, text=items[item_index])
                for position, item_index in enumerate(order)
            ],
        )

    def extract_answer(self, question, widget):
        widget = self._expect_widget(question, widget, OrderingWidget)
        return self.validate(question, [item.item_index for item in widget.items])

    def compare(self, question, student, authoritative):
        correct = [_as_index(v) for v in _as_list(authoritative)]
        order = [_as_index(v) for v in student] if isinstance(student, (list, tuple)) else []
        positions = [i < len(order) and order[i] == c for i, c in enumerate(correct)]
        is_correct = isinstance(student, (list, tuple)) and is_answered(student) and order == correct
        return Comparison(is_correct=is_correct, positions=positions)

    def render_review(self, question, student, authoritative):
        items = question.labels
        correct = [_as_index(v) for v in _as_list(authoritative)]
        order = [_as_index(v) for v in _as_list(student)]

        def text(index):
            return items[index] if index is not None and 0 <= index < len(items) else ""

        student_rows = [
            OrderingReviewRow(
                position=position,
                item_index=item_index,
                text=text(item_index),
                in_correct_position=position < len(correct) and correct[position] == item_index,
            )
            for position, item_index in enumerate(order)
        ]
        correct_rows = [
            OrderingReviewRow(position=position, item_index=item_index, text=text(item_index))
            for position, item_index in enumerate(correct)
        ]
        return OrderingReview(
            student_order=student_rows,
            correct_order=correct_rows,
            is_correct=self.compare(question, student, authoritative).is_correct,
        )


class MatchingStrategy(QuestionTypeStrategy):
    """위치 = 좌측 항목 인덱스, 값 = 선택한 우측 항목 인덱스 (미선택 None)."""

    question_type = QuestionType.MATCHING

    def validate(self, question, value):
        if value is None:
            return None
        size = len(question.pairs)
        if not isinstance(value, (list, tuple)) or len(value) != size:
            raise AnswerValidationError(f"문항 {question.id}: 짝짓기 답안은 길이 {size} 리스트여야 합니다.")
        return [None if v is None else self._check_index(question, v, size) for v in value]

    def render_input(self, question, existing=None):
        pairs = question.pairs
        matches = self.existing_or_none(question, existing) or [None] * len(pairs)
        return MatchingWidget(
            name=self.input_name(question),
            rows=[
                MatchingRow(pair_index=i, left=pair.left, selected=matches[i])
                for i, pair in enumerate(pairs)
            ],
            choices=[pair.right for pair in pairs],
        )

    def extract_answer(self, question, widget):
        widget = self._expect_widget(question, widget, MatchingWidget)
        size = len(question.pairs)
        matches: List[Optional[int]] = [None] * size
        for row in widget.rows:
            if not (0 <= row.pair_index < size):
                raise AnswerValidationError(f"문항 {question.id}: 잘못된 짝짓기 행 {row.pair_index}")
            matches[row.pair_index] = row.selected
        return self.validate(question, matches)

    def compare(self, question, student, authoritative):
        correct = [_as_index(v) for v in _as_list(authoritative)]
        matches = list(student) if isinstance(student, (list, tuple)) else []
        positions = []
        for i in range(len(question.pairs)):
            s = _as_index(matches[i]) if i < len(matches) and matches[i] is not None else None
            c = correct[i] if i < len(correct) else None
            positions.append(s is not None and s == c)
        is_correct = (
            any(m is not None for m in matches)
            and len(matches) == len(correct)
            and all(positions)
        )
        return Comparison(is_correct=is_correct, positions=positions)

    def render_review(self, question, student, authoritative):
        pairs = question.pairs
        rights = [pair.right for pair in pairs]
        correct = [_as_index(v) for v in _as_list(authoritative)]
        matches = list(student) if isinstance(student, (list, tuple)) else []
        result = self.compare(question, student, authoritative)

        rows = []
        for i, pair in enumerate(pairs):
            s = _as_index(matches[i]) if i < len(matches) and matches[i] is not None else None
            c = correct[i] if i < len(correct) else None
            rows.append(MatchingReviewRow(
                pair_index=i,
                left=pair.left,
                student_match=s,
                student_text=rights[s] if s is not None and 0 <= s < len(rights) else NOT_MATCHED,
                correct_match=c,
                correct_text=rights[c] if c is not None and 0 <= c < len(rights) else "",
                is_correct=result.positions[i],
            ))
        return MatchingReview(rows=rows, is_correct=result.is_correct)


# ── 알 수 없는 유형 ─────────────────────────────────────────────────────────

class UnsupportedStrategy(QuestionTypeStrategy):
    """
    모르는 유형의 문항. 응답할 수 없고 안내 문구만 보여준다.
    채점은 백엔드 몫이므로 리뷰 상태는 백엔드 is_correct 를 따른다 (보통 수동 채점).
    """

    question_type = QuestionType.UNSUPPORTED

    def validate(self, question, value):
        if value is None:
            return None
        raise AnswerValidationError(
            f"문항 {question.id}: 지원하지 않는 문항 유형({question.type_tag})에는 답할 수 없습니다."
        )

    def render_input(self, question, existing=None):
        return UnsupportedWidget(name=self.input_name(question), type_tag=question.type_tag)

    def extract_answer(self, question, widget):
        self._expect_widget(question, widget, UnsupportedWidget)
        raise AnswerValidationError(
            f"문항 {question.id}: 지원하지 않는 문항 유형({question.type_tag})에는 답할 수 없습니다."
        )

    def compare(self, question, student, authoritative):
        return Comparison(is_correct=False)

    def render_review(self, question, student, authoritative):
        text = str(student) if is_answered(student) else None
        return UnsupportedReview(
            type_tag=question.type_tag,
            student_answer=text,
            display=text if text else NOT_ANSWERED,
        )


# ── 레지스트리 ──────────────────────────────────────────────────────────────

REGISTRY: Dict[QuestionType, QuestionTypeStrategy] = {
    strategy.question_type: strategy
    for strategy in (
        SingleChoiceStrategy(),
        MultipleChoiceStrategy(),
        TrueFalseStrategy(),
        ShortAnswerStrategy(),
        FillBlanksStrategy(),
        OrderingStrategy(),
        MatchingStrategy(),
        ImageBasedStrategy(),
        UnsupportedStrategy(),
    )
}

_missing = set(QuestionType) - set(REGISTRY)
if _missing:
    raise RuntimeError(f"전략이 없는 문항 유형: {sorted(t.value for t in _missing)}")


def get_strategy(question_type: QuestionType) -> QuestionTypeStrategy:
    return REGISTRY[QuestionType(question_type)]


def validate_answer(question: Question, value: Any) -> Any:
    return get_strategy(question.question_type).validate(question, value)


def render_input(question: Question, existing: Any = None):
    return get_strategy(question.question_type).render_input(question, existing)


def extract_answer(question: Question, widget) -> Any:
    return get_strategy(question.question_type).extract_answer(question, widget)


def compare(question: Question, student: Any, authoritative: Any) -> Comparison:
    return get_strategy(question.question_type).compare(question, student, authoritative)


def render_review(question: Question, student: Any, authoritative: Any):
    return get_strategy(question.question_type).render_review(question, student, authoritative)
