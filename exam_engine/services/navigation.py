"""
services/navigation.py

문항 이동 컨트롤러.
이동(jump / next / prev) 전에 항상 현재 문항의 답안을 답안지에 반영(flush)하므로
이동 중에 답안이 사라지지 않는다.
"""

from typing import Callable, List, Sequence

from exam_engine.models.question_model import Question
from exam_engine.services.answer_store import AnswerStore


class NavigationController:
    def __init__(
        self,
        questions: Sequence[Question],
        store: AnswerStore,
        flush: Callable[[], None],
        start_index: int = 0,
    ):
        self.questions = list(questions)
        self.store = store
        self._flush = flush
        self.index = max(0, min(start_index, len(self.questions) - 1))

    @property
    def current(self) -> Question:
        return self.questions[self.index]

    @property
    def total(self) -> int:
        return len(self.questions)

    @property
    def is_first(self) -> bool:
        return self.index == 0

    @property
    def is_last(self) -> bool:
        return self.index == len(self.questions) - 1

    def jump(self, index: int) -> Question:
        """
        지정한 문항으로 이동한다.

        Raises:
            IndexError: 범위를 벗어난 인덱스
        """
        if not (0 <= index < len(self.questions)):
            raise IndexError(f"문항 인덱스 범위 초과: {index} (총 {len(self.questions)}문항)")
        self._flush()
        self.index = index
        return self.current

    def next(self) -> bool:
        """다음 문항으로. 마지막 문항이면 이동하지 않고 False."""
        return self._step(1)

    def prev(self) -> bool:
        """이전 문항으로. 첫 문항이면 이동하지 않고 False."""
        return self._step(-1)

    def _step(self, direction: int) -> bool:
        self._flush()
        new_index = self.index + direction
        if not (0 <= new_index < len(self.questions)):
            return False
        self.index = new_index
        return True

    def answered_flags(self) -> List[bool]:
        """진행 레일 색상용 문항별 응답 여부."""
        return [self.store.is_answered(q.id) for q in self.questions]
