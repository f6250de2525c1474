"""Authoring checks for quiz questions.

A question that has not been started yet (no prompt, no option text, no
correct answer) is always valid so an editor does not flag blank drafts.
Warnings never affect validity.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import assert_never

from .gaps import iter_gaps
from .models import (
    FillBlankQuestion,
    LongTextQuestion,
    MediaQuestion,
    MultipleChoiceQuestion,
    Question,
    Quiz,
    ShortAnswerQuestion,
    SingleChoiceQuestion,
    TextCompletionQuestion,
)

__all__ = [
    "REQUIRED_OPTION_COUNT",
    "QuizValidationReport",
    "ValidationResult",
    "has_started",
    "validate_question",
    "validate_quiz",
]

REQUIRED_OPTION_COUNT = 4


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class QuizValidationReport:
    results: tuple[tuple[Question, ValidationResult], ...]

    @property
    def is_valid(self) -> bool:
        return all(result.is_valid for _, result in self.results)

    @property
    def error_count(self) -> int:
        return sum(len(result.errors) for _, result in self.results)

    @property
    def warning_count(self) -> int:
        return sum(len(result.warnings) for _, result in self.results)


def has_started(question: Question) -> bool:
    if question.prompt_text.strip():
        return True
    if isinstance(
        question,
        (SingleChoiceQuestion, MediaQuestion, MultipleChoiceQuestion),
    ):
        if any(option.text.strip() for option in question.options):
            return True
    return _has_correct_answer(question)


def validate_question(question: Question) -> ValidationResult:
    if not has_started(question):
        return ValidationResult(is_valid=True)

    errors: list[str] = []
    warnings: list[str] = []
    if not question.prompt_text.strip():
        errors.append("Question text is required")

    if isinstance(question, (SingleChoiceQuestion, MediaQuestion)):
        errors.extend(_choice_errors(question, [question.correct_answer]))
    elif isinstance(question, MultipleChoiceQuestion):
        errors.extend(_choice_errors(question, list(question.correct_answer)))
    elif isinstance(question, ShortAnswerQuestion):
        if not question.correct_answer.strip():
            errors.append("Please provide the correct answer")
    elif isinstance(question, FillBlankQuestion):
        gaps = list(iter_gaps(question.gap_text, question.gap_separator))
        if not gaps:
            errors.append(
                "Please add at least one gap [[answer]] in the passage"
            )
        for gap in gaps:
            if gap.parsed.is_empty:
                errors.append(f"Gap {gap.index + 1} has no options")
    elif isinstance(question, TextCompletionQuestion):
        gaps = list(iter_gaps(question.gap_text, question.gap_separator))
        if not gaps:
            errors.append(
                "Please add gaps using [[answer]] format in the text"
            )
        else:
            if len(question.correct_answer) != len(gaps):
                errors.append("Number of answers must match number of gaps")
            extracted = [gap.parsed.correct_option for gap in gaps]
            cached = list(question.correct_answer)
            if any(not answer.strip() for answer in extracted + cached):
                errors.append("All gap answers must be provided")
    elif isinstance(question, LongTextQuestion):
        # An empty sample answer means the question is ungraded on purpose.
        pass
    else:
        assert_never(question)

    if isinstance(question, (FillBlankQuestion, TextCompletionQuestion)):
        for gap in iter_gaps(question.gap_text, question.gap_separator):
            if gap.parsed.marker_count > 1:
                warnings.append(
                    f"Gap {gap.index + 1} marks {gap.parsed.marker_count} "
                    "options as correct; the last marked option "
                    f"'{gap.parsed.correct_option}' is used"
                )

    return ValidationResult(
        is_valid=not errors,
        errors=tuple(errors),
        warnings=tuple(warnings),
    )


def validate_quiz(quiz: Quiz) -> QuizValidationReport:
    return QuizValidationReport(
        results=tuple(
            (question, validate_question(question))
            for question in quiz.questions
        )
    )


def _choice_errors(
    question: SingleChoiceQuestion | MediaQuestion | MultipleChoiceQuestion,
    selected: list[int | None],
) -> list[str]:
    errors: list[str] = []
    texts = [option.text.strip() for option in question.options]
    if any(texts):
        valid = [
            index
            for index in selected
            if index is not None and 0 <= index < len(texts)
        ]
        if not valid or len(valid) != len(selected):
            errors.append("Please select a correct answer")
    if len(texts) != REQUIRED_OPTION_COUNT:
        errors.append("Exactly 4 options are required")
    if any(texts) and not all(texts):
        errors.append("All options must have text")
    return errors


def _has_correct_answer(question: Question) -> bool:
    if isinstance(question, (SingleChoiceQuestion, MediaQuestion)):
        return question.correct_answer is not None
    if isinstance(question, MultipleChoiceQuestion):
        return bool(question.correct_answer)
    if isinstance(question, (ShortAnswerQuestion, LongTextQuestion)):
        return bool(question.correct_answer.strip())
    if isinstance(question, (FillBlankQuestion, TextCompletionQuestion)):
        return any(answer.strip() for answer in question.correct_answer)
    assert_never(question)
