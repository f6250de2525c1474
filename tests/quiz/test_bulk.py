from __future__ import annotations

from lesson_quiz.quiz.bulk import parse_bulk_questions
from lesson_quiz.quiz.validation import validate_question

SAMPLE = """\
Part 1. Grammar

1.1 The committee ___ reached a decision.
A) has +
B) have
C) having
D) had

1.2 She ___ to school every day.
go
goes +
going
gone

2. Pick the synonym of "quick".
fast
slow
late
heavy
"""


def test_parse_bulk_questions_builds_single_choice():
    result = parse_bulk_questions(SAMPLE)

    assert result.ok
    assert [q.id for q in result.questions] == [
        "bulk_1_1",
        "bulk_1_2",
        "bulk_2",
    ]
    first, second, third = result.questions
    assert first.prompt_text == "Question 1.1"
    assert first.content_text == "The committee ___ reached a decision."
    assert [o.text for o in first.options] == ["has", "have", "having", "had"]
    assert first.correct_answer == 0
    assert second.correct_answer == 1
    assert second.options[1].id == "bulk_1_2_B"
    assert third.correct_answer == 0
    assert [q.order_index for q in result.questions] == [0, 1, 2]
    assert all(validate_question(q).is_valid for q in result.questions)


def test_parse_bulk_questions_start_index():
    result = parse_bulk_questions(SAMPLE, start_index=10)

    assert [q.order_index for q in result.questions] == [10, 11, 12]


def test_parse_bulk_questions_reports_wrong_option_count():
    text = "1. Only three\nA) a\nB) b +\nC) c\n\n2. Fine\na\nb\nc\nd\n"

    result = parse_bulk_questions(text)

    assert not result.ok
    assert result.errors == ("Question 1: Expected 4 options, found 3",)
    assert [q.id for q in result.questions] == ["bulk_2"]


def test_parse_bulk_questions_without_blocks():
    result = parse_bulk_questions("just some notes")

    assert result.questions == ()
    assert result.errors == (
        "No valid questions found. Please check the format.",
    )


def test_to_quiz_uses_title():
    quiz = parse_bulk_questions(SAMPLE).to_quiz("Imported")

    assert quiz.title == "Imported"
    assert len(quiz.questions) == 3
