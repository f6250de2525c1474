"""Grading and gap-weighted statistics.

Every gap of a fill-in question is one graded unit; every other question is
one unit. The pass threshold is applied to the unrounded percentage.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, assert_never

from .models import (
    AnswerState,
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
    "DEV_SAMPLE_ANSWER",
    "PASS_THRESHOLD",
    "PRIVILEGED_ROLES",
    "GapStatistics",
    "QuestionResult",
    "QuizScore",
    "aggregate_statistics",
    "all_answered",
    "autofill_correct_answers",
    "can_proceed",
    "gap_results",
    "is_answered",
    "is_correct",
    "is_passed",
    "question_results",
    "score_quiz",
    "unanswered",
]

PASS_THRESHOLD = 50.0
PRIVILEGED_ROLES = frozenset({"teacher", "curator", "admin"})
DEV_SAMPLE_ANSWER = "Sample answer for development testing"


@dataclass(frozen=True)
class GapStatistics:
    total_gaps: int = 0
    correct_gaps: int = 0
    regular_questions: int = 0
    correct_regular: int = 0

    @property
    def total_items(self) -> int:
        return self.total_gaps + self.regular_questions

    @property
    def correct_items(self) -> int:
        return self.correct_gaps + self.correct_regular

    @property
    def score_percentage(self) -> float:
        if self.total_items == 0:
            return 0.0
        return self.correct_items / self.total_items * 100

    @property
    def display_percentage(self) -> int:
        return round(self.score_percentage)


@dataclass(frozen=True)
class QuizScore:
    statistics: GapStatistics

    @property
    def total_items(self) -> int:
        return self.statistics.total_items

    @property
    def correct_items(self) -> int:
        return self.statistics.correct_items

    @property
    def score_percentage(self) -> float:
        return self.statistics.score_percentage

    @property
    def passed(self) -> bool:
        return is_passed(self.score_percentage)


@dataclass(frozen=True)
class QuestionResult:
    question: Question
    correct_units: int
    total_units: int

    @property
    def is_correct(self) -> bool:
        return self.total_units > 0 and self.correct_units == self.total_units


def _same_text(expected: str, given: str) -> bool:
    expected = expected.strip()
    return bool(expected) and expected.lower() == given.strip().lower()


def gap_results(
    question: FillBlankQuestion | TextCompletionQuestion, answers: AnswerState
) -> list[bool]:
    """Per-gap outcome against answers recomputed from the current passage."""

    given = answers.gap_values(question.id)
    return [
        index < len(given) and _same_text(expected, given[index])
        for index, expected in enumerate(question.expected_answers())
    ]


def is_correct(question: Question, answers: AnswerState) -> bool:
    selection = answers.selection(question.id)
    if isinstance(question, (SingleChoiceQuestion, MediaQuestion)):
        return (
            isinstance(selection, int)
            and not isinstance(selection, bool)
            and selection == question.correct_answer
        )
    if isinstance(question, MultipleChoiceQuestion):
        return (
            isinstance(selection, list)
            and bool(question.correct_answer)
            and set(selection) == set(question.correct_answer)
        )
    if isinstance(question, ShortAnswerQuestion):
        return isinstance(selection, str) and _same_text(
            question.correct_answer, selection
        )
    if isinstance(question, (FillBlankQuestion, TextCompletionQuestion)):
        expected = question.expected_answers()
        given = answers.gap_values(question.id)
        if not expected or len(given) != len(expected):
            return False
        return all(gap_results(question, answers))
    if isinstance(question, LongTextQuestion):
        return isinstance(selection, str) and bool(selection.strip())
    assert_never(question)


def aggregate_statistics(quiz: Quiz, answers: AnswerState) -> GapStatistics:
    total_gaps = correct_gaps = regular = correct_regular = 0
    for question in quiz.questions:
        if isinstance(question, (FillBlankQuestion, TextCompletionQuestion)):
            outcomes = gap_results(question, answers)
            total_gaps += len(outcomes)
            correct_gaps += sum(outcomes)
        else:
            regular += 1
            correct_regular += int(is_correct(question, answers))
    return GapStatistics(
        total_gaps=total_gaps,
        correct_gaps=correct_gaps,
        regular_questions=regular,
        correct_regular=correct_regular,
    )


def question_results(
    quiz: Quiz, answers: AnswerState
) -> list[QuestionResult]:
    results: list[QuestionResult] = []
    for question in quiz.questions:
        if isinstance(question, (FillBlankQuestion, TextCompletionQuestion)):
            outcomes = gap_results(question, answers)
            results.append(
                QuestionResult(question, sum(outcomes), len(outcomes))
            )
        else:
            results.append(
                QuestionResult(question, int(is_correct(question, answers)), 1)
            )
    return results


def score_quiz(quiz: Quiz, answers: AnswerState) -> QuizScore:
    return QuizScore(aggregate_statistics(quiz, answers))


def is_passed(score_percentage: float) -> bool:
    return score_percentage >= PASS_THRESHOLD


def can_proceed(role: str | None, score_percentage: float) -> bool:
    """Whether the learner may move on to the next lesson step."""

    if role and role.strip().lower() in PRIVILEGED_ROLES:
        return True
    return is_passed(score_percentage)


def is_answered(question: Question, answers: AnswerState) -> bool:
    """Whether enough input exists to check or submit ``question``."""

    selection = answers.selection(question.id)
    if isinstance(question, (FillBlankQuestion, TextCompletionQuestion)):
        # A passage without gaps has nothing to fill in.
        count = question.gap_count()
        values = answers.gap_values(question.id)[:count]
        return len(values) == count and all(value.strip() for value in values)
    if isinstance(question, (ShortAnswerQuestion, LongTextQuestion)):
        return isinstance(selection, str) and bool(selection.strip())
    if isinstance(question, MultipleChoiceQuestion):
        return isinstance(selection, list) and bool(selection)
    if isinstance(question, (SingleChoiceQuestion, MediaQuestion)):
        return selection is not None
    assert_never(question)


def all_answered(quiz: Quiz, answers: AnswerState) -> bool:
    return all(is_answered(question, answers) for question in quiz.questions)


def unanswered(quiz: Quiz, answers: AnswerState) -> Iterable[Question]:
    return (q for q in quiz.questions if not is_answered(q, answers))


def autofill_correct_answers(quiz: Quiz) -> AnswerState:
    """Answer every question correctly; used for demos and smoke tests."""

    state = AnswerState()
    for question in quiz.questions:
        if isinstance(question, (SingleChoiceQuestion, MediaQuestion)):
            if question.correct_answer is not None:
                state.set_selection(question.id, question.correct_answer)
        elif isinstance(question, MultipleChoiceQuestion):
            state.set_selection(question.id, list(question.correct_answer))
        elif isinstance(question, ShortAnswerQuestion):
            state.set_selection(question.id, question.correct_answer)
        elif isinstance(question, (FillBlankQuestion, TextCompletionQuestion)):
            state.set_gaps(question.id, question.expected_answers())
        elif isinstance(question, LongTextQuestion):
            state.set_selection(
                question.id, question.correct_answer or DEV_SAMPLE_ANSWER
            )
        else:
            assert_never(question)
    return state
