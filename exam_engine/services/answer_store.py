"""
services/answer_store.py

답안지: 문항 ID → 답안 값.

- 현재 응시의 문항 집합 밖의 ID 는 절대 들어가지 않는다.
- 들어오는 값은 해당 문항 유형으로 검증·정규화된다.
- 미응답 값(None, "", [])은 저장하지 않고 기존 항목을 지운다.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from exam_engine.models.question_model import Question
from exam_engine.services.errors import AnswerValidationError
from exam_engine.services.question_types import is_answered, validate_answer

logger = logging.getLogger(__name__)


class AnswerStore:
    def __init__(self, questions: Iterable[Question]):
        self._questions: Dict[str, Question] = {q.id: q for q in questions}
        self._answers: Dict[str, Any] = {}

    def __contains__(self, question_id: str) -> bool:
        return question_id in self._answers

    def __len__(self) -> int:
        return len(self._answers)

    def question(self, question_id: str) -> Question:
        try:
            return self._questions[question_id]
        except KeyError:
            raise AnswerValidationError(f"이 응시에 없는 문항입니다: {question_id}") from None

    def get(self, question_id: str, default: Any = None) -> Any:
        return self._answers.get(question_id, default)

    def put(self, question_id: str, value: Any) -> Any:
        """
        답안을 검증해 저장하고 정규화된 값을 반환한다.

        Raises:
            AnswerValidationError: 문항이 없거나 값이 유형과 맞지 않는 경우
        """
        question = self.question(question_id)
        normalized = validate_answer(question, value)
        if is_answered(normalized):
            self._answers[question_id] = normalized
        else:
            self._answers.pop(question_id, None)
        return normalized

    def clear(self, question_id: str) -> None:
        self._answers.pop(question_id, None)

    def is_answered(self, question_id: str) -> bool:
        return is_answered(self._answers.get(question_id))

    def unanswered(self) -> List[str]:
        """답할 수 없는 문항(지원하지 않는 유형)은 미응답 경고에서 뺀다."""
        return [
            qid for qid, question in self._questions.items()
            if question.supported and not self.is_answered(qid)
        ]

    def restore(self, saved: Optional[Dict[str, Any]]) -> int:
        """
        저장된 답안을 복원한다. 모르는 문항이나 형태가 맞지 않는 값은 버린다.

        Returns:
            복원된 답안 수
        """
        restored = 0
        for question_id, value in (saved or {}).items():
            question_id = str(question_id)
            if question_id not in self._questions:
                logger.warning(f"복원 제외: 응시에 없는 문항 {question_id}")
                continue
            if not self._questions[question_id].supported:
                # 답할 수 없는 문항의 기존 답안은 해석하지 않고 그대로 보존
                if is_answered(value):
                    self._answers[question_id] = value
                    restored += 1
                continue
            try:
                self.put(question_id, value)
            except AnswerValidationError as e:
                logger.warning(f"복원 제외: {e}")
                continue
            if question_id in self._answers:
                restored += 1
        return restored

    def snapshot(self) -> Dict[str, Any]:
        """직렬화용 사본 (문항 순서 유지)."""
        return {
            qid: list(self._answers[qid]) if isinstance(self._answers[qid], list) else self._answers[qid]
            for qid in self._questions
            if qid in self._answers
        }
