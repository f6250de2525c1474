from __future__ import annotations

import pytest

from lesson_quiz.quiz.summary import (
    LessonQuizSummary,
    QuizSummaryItem,
    summarize_lesson_attempts,
)


def _record(title, correct, total, score):
    return {
        "quiz_title": title,
        "correct_answers": correct,
        "total_questions": total,
        "score_percentage": score,
        "answers": "[]",
    }


def test_summary_uses_latest_attempt_per_step(memory_store):
    memory_store.save({"step_id": 1, **_record("Verbs", 1, 4, 25.0)})
    memory_store.save({"step_id": 1, **_record("Verbs", 4, 4, 100.0)})
    memory_store.save({"step_id": 2, **_record("Nouns", 1, 3, 100 / 3)})

    summary = summarize_lesson_attempts(memory_store, [1, 2, 3])

    assert [item.step_id for item in summary.items] == [1, 2]
    assert summary.items[0].score_percentage == 100.0
    assert summary.items[0].completed_at == "2024-01-02"
    assert summary.total_questions == 7
    assert summary.correct_answers == 5
    assert summary.passed_count == 1
    assert summary.average_percentage == pytest.approx((100 + 100 / 3) / 2)


def test_summary_skips_failing_store(memory_store):
    memory_store.fail_list = True

    summary = summarize_lesson_attempts(memory_store, [1])

    assert summary.items == ()
    assert summary.average_percentage == 0.0


def test_summary_item_pass_flag():
    item = QuizSummaryItem(
        step_id=1,
        quiz_title="Q",
        score_percentage=50.0,
        correct_answers=1,
        total_questions=2,
    )

    assert item.passed
    assert LessonQuizSummary((item,)).passed_count == 1
