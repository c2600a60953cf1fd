import pytest

from conftest import RAW_QUESTIONS

from exam_engine.models.attempt_model import CompletedAttempt
from exam_engine.services.exam_service import (
    answer_status,
    format_duration,
    matches_filter,
    summarize,
)
from exam_engine.services.review_service import build_review
from exam_engine.views import result_view


def _completed(**overrides):
    raw = {
        "id": "att-1",
        "test_title": "General Knowledge",
        "student_name": "Kim",
        "score": 5,
        "max_score": 13,
        "percentage": 38.46,
        "passing_score": 40,
        "time_spent_seconds": 725,
        "answers": {
            "1": {"student_answer": 0, "is_correct": True, "earned_marks": 1},
            "2": {"student_answer": [0, 1], "is_correct": False, "earned_marks": 0},
            "3": {"student_answer": True, "is_correct": True, "earned_marks": 1},
            "4": {"student_answer": "water", "is_correct": None, "earned_marks": None},
            "5": {"student_answer": ["sky", "Blue"], "is_correct": True, "earned_marks": 2},
            "7": {"student_answer": [0, None], "is_correct": False, "earned_marks": 1},
        },
        "questions": RAW_QUESTIONS,
    }
    raw.update(overrides)
    return CompletedAttempt.model_validate(raw)


# ── exam_service ────────────────────────────────────────────────────────────

def test_answer_status_is_tri_state():
    assert answer_status(True) == "correct"
    assert answer_status(False) == "incorrect"
    assert answer_status(None) == "manual"


def test_pending_answers_only_match_all_filter():
    assert matches_filter("manual", "all")
    assert not matches_filter("manual", "correct")
    assert not matches_filter("manual", "incorrect")


def test_unknown_filter():
    with pytest.raises(ValueError):
        matches_filter("correct", "pending")


def test_format_duration():
    assert format_duration(725) == "12m 5s"
    assert format_duration(0) == "0m 0s"


def test_summary_counts():
    summary = summarize(_completed())
    assert summary.total == 8
    assert summary.correct_count == 3
    # 6, 8 은 답안 없음 → is_correct None
    assert summary.incorrect_count == 2
    assert summary.pending_count == 3
    assert summary.unanswered_count == 2
    assert summary.passed is False
    assert summary.time_spent == "12m 5s"


def test_passed_at_exact_threshold():
    assert summarize(_completed(percentage=40)).passed is True


# ── build_review ────────────────────────────────────────────────────────────

def test_review_covers_every_question_in_order():
    review = build_review(_completed())
    assert [item.number for item in review.items] == list(range(1, 9))
    assert review.items[3].status == "manual"
    assert review.items[3].earned_marks == 0.0


def test_incorrect_filter_excludes_pending():
    review = build_review(_completed(), "incorrect")
    assert [item.question_id for item in review.items] == ["2", "7"]
    assert [item.number for item in review.items] == [2, 7]


def test_correct_filter():
    review = build_review(_completed(), "correct")
    assert [item.question_id for item in review.items] == ["1", "3", "5"]


def test_review_widget_uses_authoritative_answer():
    review = build_review(_completed())
    blanks = review.items[4].widget
    assert blanks.kind == "blanks_review"
    assert [b.is_correct for b in blanks.blanks] == [True, True]

    matching = review.items[6].widget
    assert matching.rows[1].student_text == "Not matched"
    assert review.items[6].fraction == 0.5


def test_image_question_keeps_media_url():
    review = build_review(_completed())
    assert review.items[7].media_url == "/media/shape.png"


def test_raw_answers_are_wrapped_as_ungraded():
    completed = _completed(answers={"1": 2})
    graded = completed.graded("1")
    assert graded.student_answer == 2
    assert graded.is_correct is None
    assert completed.graded("9").student_answer is None


# ── result_view ─────────────────────────────────────────────────────────────

def test_result_screen():
    screen = result_view.render(build_review(_completed(), "incorrect"))
    assert screen.title == "Kim - General Knowledge"
    assert screen.badge == "Failed"
    assert screen.score_label == "5 / 13"
    assert screen.percentage_label == "38.5%"
    assert [f.active for f in screen.filters] == [False, False, True]
    assert screen.cards[0].number_label == "Question 2"
    assert screen.cards[0].marks_label == "0 / 2 marks"
    assert any(s.label == "Manual Grading" and s.value == "3" for s in screen.stats)


def test_result_screen_empty_filter():
    completed = _completed(answers={})
    screen = result_view.render(build_review(completed, "correct"))
    assert screen.cards == []
    assert screen.empty_message == "No questions match the current filter."


def test_unknown_question_type_is_reviewed_as_manual():
    essay = {"id": 9, "question_type": "essay", "question_text": "Discuss.", "marks": 5}
    answers = dict(_completed().answers)
    completed = _completed(
        questions=RAW_QUESTIONS + [essay],
        answers={
            **{qid: a.model_dump() for qid, a in answers.items()},
            "9": {"student_answer": "It depends.", "is_correct": None, "earned_marks": None},
        },
    )
    assert completed.questions[-1].type_tag == "essay"

    review = build_review(completed)
    assert len(review.items) == 9
    item = review.items[-1]
    assert item.status == "manual"
    assert item.widget.kind == "unsupported_review"
    assert item.widget.message == "Unsupported question type"
    assert item.widget.display == "It depends."
    assert review.summary.pending_count == 4

    card = result_view.render(review).cards[-1]
    assert card.status_text == "Manual Grading"
