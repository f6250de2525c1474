"""Quiz progression state machine.

``one_by_one`` quizzes run ``title -> question <-> result -> completed``;
``all_at_once`` quizzes run ``title -> feed -> completed``. A completed run
can be retried (``reset_quiz``) and an all-at-once run can be reviewed
read-only (``review_quiz``). Reaching ``completed`` through play records an
attempt; restoring a stored attempt does not.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Sequence

from . import scoring
from .attempts import AttemptRecorder, QuizAttempt
from .models import (
    AnswerState,
    DisplayMode,
    Question,
    Quiz,
    Selection,
    initial_answer_state,
    is_gapped,
)

__all__ = [
    "PlayerState",
    "QuizOutcome",
    "QuizPlayer",
    "QuizStateError",
]

_LOGGER = logging.getLogger(__name__)


class QuizStateError(RuntimeError):
    """Raised when a transition is not allowed from the current state."""


class PlayerState(str, Enum):
    TITLE = "title"
    QUESTION = "question"
    RESULT = "result"
    FEED = "feed"
    COMPLETED = "completed"


@dataclass(frozen=True)
class QuizOutcome:
    score_percentage: float
    correct_items: int
    total_items: int
    restored: bool = False

    @property
    def passed(self) -> bool:
        return scoring.is_passed(self.score_percentage)

    @property
    def display_percentage(self) -> int:
        return round(self.score_percentage)


class QuizPlayer:
    def __init__(
        self,
        quiz: Quiz,
        answers: AnswerState | None = None,
        *,
        recorder: AttemptRecorder | None = None,
        clock: Callable[[], float] = time.monotonic,
        allow_review: bool = True,
        logger: logging.Logger | None = None,
    ) -> None:
        self.quiz = quiz
        if answers is None:
            answers = initial_answer_state(quiz)
        self.answers = answers
        self.recorder = recorder
        self.allow_review = allow_review
        self.state = PlayerState.TITLE
        self.cursor = 0
        self.read_only = False
        self.outcome: QuizOutcome | None = None
        self.started_at: float | None = None
        self._clock = clock
        self._logger = logger or _LOGGER

    @property
    def all_at_once(self) -> bool:
        return self.quiz.display_mode is DisplayMode.ALL_AT_ONCE

    @property
    def current_question(self) -> Question | None:
        if 0 <= self.cursor < len(self.quiz.questions):
            return self.quiz.questions[self.cursor]
        return None

    @property
    def is_last_question(self) -> bool:
        return self.cursor >= len(self.quiz.questions) - 1

    def start(self) -> None:
        self._expect(PlayerState.TITLE)
        if not self.quiz.questions:
            raise QuizStateError("Quiz has no questions to play.")
        self.cursor = 0
        self.started_at = self._clock()
        self.state = (
            PlayerState.FEED if self.all_at_once else PlayerState.QUESTION
        )

    def submit_answer(
        self, question_id: str, value: Selection | Sequence[str]
    ) -> None:
        """Store an answer; gapped questions take the full list of gaps."""

        question = self._editable_question(question_id)
        if is_gapped(question):
            if isinstance(value, str) or not isinstance(value, Sequence):
                raise QuizStateError(
                    f"Question '{question_id}' expects one answer per gap."
                )
            self.answers.set_gaps(question_id, value)
        else:
            selection: Selection = value  # type: ignore[assignment]
            self.answers.set_selection(question_id, selection)

    def submit_gap(self, question_id: str, index: int, value: str) -> None:
        question = self._editable_question(question_id)
        if not is_gapped(question):
            raise QuizStateError(f"Question '{question_id}' has no gaps.")
        self.answers.set_gap(question_id, index, value)

    def check_answer(self) -> bool:
        """Reveal the result of the current question and return it."""

        self._expect(PlayerState.QUESTION)
        question = self.current_question
        assert question is not None
        if not scoring.is_answered(question, self.answers):
            raise QuizStateError("Answer the question before checking it.")
        self.state = PlayerState.RESULT
        return scoring.is_correct(question, self.answers)

    def is_current_correct(self) -> bool:
        question = self.current_question
        return question is not None and scoring.is_correct(
            question, self.answers
        )

    def next_question(self) -> None:
        self._expect(PlayerState.RESULT)
        if not self.is_last_question:
            self.cursor += 1
            self.state = PlayerState.QUESTION
            return
        self._complete()

    def finish_quiz(self) -> QuizOutcome:
        """Score and record an all-at-once run, whether it passes or not."""

        self._expect(PlayerState.FEED)
        if self.read_only:
            raise QuizStateError("A quiz under review cannot be submitted.")
        missing = list(scoring.unanswered(self.quiz, self.answers))
        if missing:
            raise QuizStateError(
                f"{len(missing)} question(s) still need an answer."
            )
        return self._complete()

    def reset_quiz(self) -> None:
        """Retry a finished quiz keeping the previous answers."""

        if not (
            self.state is PlayerState.COMPLETED
            or (self.state is PlayerState.FEED and self.read_only)
        ):
            raise QuizStateError(
                f"Cannot retry the quiz from the '{self.state.value}' state."
            )
        self.cursor = 0
        self.read_only = False
        self.outcome = None
        if self.all_at_once:
            self.started_at = self._clock()
            self.state = PlayerState.FEED
        else:
            self.started_at = None
            self.state = PlayerState.TITLE

    def review_quiz(self) -> None:
        self._expect(PlayerState.COMPLETED)
        if not self.all_at_once:
            raise QuizStateError("Only all-at-once quizzes can be reviewed.")
        if not self.allow_review:
            raise QuizStateError("Review is disabled for this quiz.")
        self.read_only = True
        self.state = PlayerState.FEED

    def close_review(self) -> None:
        self._expect(PlayerState.FEED)
        if not self.read_only:
            raise QuizStateError("The quiz is not being reviewed.")
        self.read_only = False
        self.state = PlayerState.COMPLETED

    def restore(
        self, attempt: QuizAttempt, answers: AnswerState | None = None
    ) -> None:
        """Show a stored attempt as the finished result of this quiz."""

        self._expect(PlayerState.TITLE)
        if answers is not None:
            self.answers = answers
        self.outcome = QuizOutcome(
            score_percentage=attempt.score_percentage,
            correct_items=attempt.correct_answers,
            total_items=attempt.total_questions,
            restored=True,
        )
        self.state = PlayerState.COMPLETED

    def elapsed_seconds(self) -> float:
        if self.started_at is None:
            return 0.0
        return max(0.0, self._clock() - self.started_at)

    def remaining_seconds(self) -> float | None:
        """Seconds left of the time limit, ``None`` when untimed."""

        if self.quiz.time_limit_minutes is None:
            return None
        limit = self.quiz.time_limit_minutes * 60
        return max(0.0, limit - self.elapsed_seconds())

    def can_proceed(self, role: str | None = None) -> bool:
        """Whether navigation to the next lesson step is allowed."""

        if self.outcome is None:
            return scoring.can_proceed(role, 0.0)
        return scoring.can_proceed(role, self.outcome.score_percentage)

    def _complete(self) -> QuizOutcome:
        score = scoring.score_quiz(self.quiz, self.answers)
        elapsed = self.elapsed_seconds()
        self.outcome = QuizOutcome(
            score_percentage=score.score_percentage,
            correct_items=score.correct_items,
            total_items=score.total_items,
        )
        self.state = PlayerState.COMPLETED
        self._logger.info(
            "Quiz completed",
            extra={
                "quiz_title": self.quiz.title,
                "score_percentage": score.score_percentage,
                "passed": score.passed,
                "elapsed_seconds": int(elapsed),
            },
        )
        if self.recorder is not None:
            self.recorder.record(self.quiz, self.answers, elapsed)
        return self.outcome

    def _editable_question(self, question_id: str) -> Question:
        if self.state not in (PlayerState.QUESTION, PlayerState.FEED):
            raise QuizStateError(
                f"Answers cannot change in the '{self.state.value}' state."
            )
        if self.read_only:
            raise QuizStateError("Answers are read-only during review.")
        question = self.quiz.question(question_id)
        if question is None:
            raise QuizStateError(f"Unknown question '{question_id}'.")
        if (
            self.state is PlayerState.QUESTION
            and question is not self.current_question
        ):
            raise QuizStateError(
                f"Question '{question_id}' is not the current question."
            )
        return question

    def _expect(self, expected: PlayerState) -> None:
        if self.state is not expected:
            raise QuizStateError(
                f"Expected the '{expected.value}' state, the quiz is in "
                f"'{self.state.value}'."
            )
