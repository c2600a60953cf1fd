import copy
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from exam_engine.models.attempt_model import Attempt, AttemptPayload, CompletedAttempt
from exam_engine.models.question_model import Question
from exam_engine.models.session_state import SubmissionResult
from exam_engine.services.errors import LoadError, SaveError, SubmitError


START = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now=START):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


RAW_QUESTIONS = [
    {"id": 1, "question_type": "singlechoice", "question_text": "Capital of France?",
     "options": ["Paris", "London", "Rome"], "marks": 1, "correct_answer": 0},
    {"id": 2, "question_type": "multiplechoice", "question_text": "Pick the primes",
     "options": ["2", "3", "4", "5"], "marks": 2, "correct_answer": [0, 1, 3]},
    {"id": 3, "question_type": "truefalse", "question_text": "The earth is round.",
     "options": None, "marks": 1, "correct_answer": True},
    {"id": 4, "question_type": "shortanswer", "question_text": "Chemical symbol for water?",
     "marks": 1, "correct_answer": ["H2O"]},
    {"id": 5, "question_type": "fillblanks", "question_text": "The ___ is ___.",
     "marks": 2, "correct_answer": ["sky", "blue"]},
    {"id": 6, "question_type": "ordering", "question_text": "Order the steps",
     "options": ["Boil", "Steep", "Pour"], "marks": 3, "correct_answer": [0, 2, 1]},
    {"id": 7, "question_type": "matching", "question_text": "Match the sounds",
     "options": [{"left": "Dog", "right": "Bark"}, {"left": "Cat", "right": "Meow"}],
     "marks": 2, "correct_answer": [0, 1]},
    {"id": 8, "question_type": "imagebased", "question_text": "Which shape is shown?",
     "options": ["Circle", "Square"], "media_url": "/media/shape.png", "marks": None,
     "correct_answer": 1},
]


def make_attempt_raw(**overrides):
    raw = {
        "id": "att-1",
        "test_title": "General Knowledge",
        "duration_minutes": 30,
        "started_at": START.isoformat(),
        "is_completed": False,
        "answers": {},
        "tab_switches": 0,
        "copy_attempts": 0,
        "suspicious_activity": [],
    }
    raw.update(overrides)
    return raw


class FakeBackend:
    """
    응시 하나를 메모리에 들고 있는 가짜 백엔드.
    save_progress 는 실제 백엔드처럼 attempt 에 진행 상황을 반영한다.
    """

    def __init__(self, attempt=None, questions=None):
        self.attempt = attempt if attempt is not None else make_attempt_raw()
        self.questions = copy.deepcopy(RAW_QUESTIONS if questions is None else questions)
        self.saves = []
        self.submits = []
        self.load_error = None
        self.save_failures = 0
        self.submit_failures = 0
        self.result = SubmissionResult(
            score=7, max_score=14, percentage=50.0, passed=True, time_spent_seconds=600,
        )
        self.closed = False

    async def load_attempt(self, attempt_id):
        if self.load_error is not None:
            raise self.load_error
        return AttemptPayload(
            attempt=Attempt.from_backend(attempt_id, self.attempt),
            questions=[Question.model_validate(q) for q in self.questions],
        )

    async def save_progress(self, attempt_id, snapshot):
        if self.save_failures:
            self.save_failures -= 1
            raise SaveError("backend unavailable")
        body = snapshot.to_body()
        self.saves.append(body)
        self.attempt.update(body)

    async def submit(self, attempt_id, snapshot):
        if self.submit_failures:
            self.submit_failures -= 1
            raise SubmitError("Failed to submit test")
        body = snapshot.to_body()
        self.submits.append(body)
        self.attempt.update(body)
        self.attempt["is_completed"] = True
        return self.result

    async def load_review(self, attempt_id):
        if self.load_error is not None:
            raise self.load_error
        if not self.attempt.get("is_completed"):
            raise LoadError("not submitted", reason=LoadError.INVALID)
        raw = dict(self.attempt)
        raw["questions"] = self.questions
        return CompletedAttempt.model_validate(raw)

    async def aclose(self):
        self.closed = True


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def questions():
    return [Question.model_validate(q) for q in RAW_QUESTIONS]


@pytest.fixture
def question_by_id(questions):
    return {q.id: q for q in questions}
