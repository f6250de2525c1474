from __future__ import annotations

from fixtures import (
    choice_question,
    fill_blank_question,
    long_text_question,
    quiz_payload,
    short_answer_question,
)
from lesson_quiz.quiz.models import question_from_dict, quiz_from_dict
from lesson_quiz.quiz.validation import (
    has_started,
    validate_question,
    validate_quiz,
)


def _validate(payload):
    return validate_question(question_from_dict(payload))


def test_blank_draft_is_valid():
    payload = {
        "id": "draft",
        "question_type": "single_choice",
        "options": [{"text": ""}, {"text": ""}],
    }

    question = question_from_dict(payload)

    assert not has_started(question)
    assert validate_question(question).is_valid


def test_complete_single_choice_is_valid():
    result = _validate(choice_question())

    assert result.is_valid
    assert result.errors == ()


def test_choice_requires_four_options_with_text():
    payload = choice_question(options=("Paris", "", "Rome"))

    result = _validate(payload)

    assert not result.is_valid
    assert "Exactly 4 options are required" in result.errors
    assert "All options must have text" in result.errors


def test_choice_requires_correct_answer_in_range():
    payload = choice_question(correct=7)

    result = _validate(payload)

    assert "Please select a correct answer" in result.errors


def test_multiple_choice_requires_selection():
    payload = choice_question(correct=[], kind="multiple_choice")

    assert "Please select a correct answer" in _validate(payload).errors


def test_missing_prompt_is_reported():
    payload = short_answer_question()
    payload["question_text"] = ""

    assert "Question text is required" in _validate(payload).errors


def test_short_answer_requires_answer():
    payload = {
        "id": "s",
        "question_type": "short_answer",
        "question_text": "Capital?",
        "correct_answer": "  ",
    }

    assert _validate(payload).errors == ("Please provide the correct answer",)


def test_long_text_without_sample_is_valid():
    assert _validate(long_text_question()).is_valid


def test_fill_blank_requires_gap():
    payload = fill_blank_question(content="No gaps at all.")

    result = _validate(payload)

    assert result.errors == (
        "Please add at least one gap [[answer]] in the passage",
    )


def test_fill_blank_flags_empty_gap():
    payload = fill_blank_question(content="One [[a*,b]] and [[ ]].")

    assert "Gap 2 has no options" in _validate(payload).errors


def test_text_completion_counts_must_match():
    payload = fill_blank_question(
        content="A [[x]] and [[y]].", kind="text_completion"
    )
    payload["correct_answer"] = ["x"]

    errors = _validate(payload).errors

    assert "Number of answers must match number of gaps" in errors


def test_text_completion_requires_answers():
    payload = fill_blank_question(
        content="Empty [[]] gap.", kind="text_completion"
    )
    payload["correct_answer"] = ["x"]

    assert "All gap answers must be provided" in _validate(payload).errors


def test_text_completion_requires_gaps():
    payload = fill_blank_question(content="Plain", kind="text_completion")

    assert _validate(payload).errors == (
        "Please add gaps using [[answer]] format in the text",
    )


def test_multiple_markers_warn_without_failing():
    payload = fill_blank_question(content="Pick [[a*,b*,c]].")

    result = _validate(payload)

    assert result.is_valid
    assert result.warnings == (
        "Gap 1 marks 2 options as correct; the last marked option 'b' is "
        "used",
    )


def test_validate_quiz_aggregates():
    quiz = quiz_from_dict(
        quiz_payload(
            choice_question(),
            choice_question("bad", correct=9),
            fill_blank_question(content="x [[a*,b*]]"),
        )
    )

    report = validate_quiz(quiz)

    assert not report.is_valid
    assert report.error_count == 1
    assert report.warning_count == 1
    assert [q.id for q, _ in report.results] == ["q1", "bad", "gaps"]
