"""Per-lesson roll-up of the latest attempt of every quiz step."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from .attempts import load_latest_attempt
from .scoring import is_passed
from .stores import AttemptStore

__all__ = [
    "LessonQuizSummary",
    "QuizSummaryItem",
    "summarize_lesson_attempts",
]


@dataclass(frozen=True)
class QuizSummaryItem:
    step_id: int | str
    quiz_title: str
    score_percentage: float
    correct_answers: int
    total_questions: int
    completed_at: str | None = None

    @property
    def passed(self) -> bool:
        return is_passed(self.score_percentage)


@dataclass(frozen=True)
class LessonQuizSummary:
    items: tuple[QuizSummaryItem, ...]

    @property
    def total_questions(self) -> int:
        return sum(item.total_questions for item in self.items)

    @property
    def correct_answers(self) -> int:
        return sum(item.correct_answers for item in self.items)

    @property
    def average_percentage(self) -> float:
        """Mean of the per-quiz scores; each quiz weighs the same."""

        if not self.items:
            return 0.0
        return sum(i.score_percentage for i in self.items) / len(self.items)

    @property
    def passed_count(self) -> int:
        return sum(1 for item in self.items if item.passed)


def summarize_lesson_attempts(
    store: AttemptStore,
    step_ids: Iterable[int | str],
    *,
    logger: logging.Logger | None = None,
) -> LessonQuizSummary:
    """Latest attempt per step; steps never attempted are left out."""

    items: list[QuizSummaryItem] = []
    for step_id in step_ids:
        attempt = load_latest_attempt(store, step_id, logger=logger)
        if attempt is None:
            continue
        items.append(
            QuizSummaryItem(
                step_id=step_id,
                quiz_title=attempt.quiz_title,
                score_percentage=attempt.score_percentage,
                correct_answers=attempt.correct_answers,
                total_questions=attempt.total_questions,
                completed_at=attempt.completed_at,
            )
        )
    return LessonQuizSummary(tuple(items))
