"""Attempt payloads: building, submitting and restoring quiz attempts.

Answers travel as an ordered list of ``[question_id, value]`` pairs,
JSON-encoded inside the payload. Whether a pair belongs to the gap map is
decided from the current quiz on restore; the attempt does not record it.
"""

from __future__ import annotations

import json
import logging
from concurrent.futures import Executor, Future
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from .models import AnswerState, Quiz
from .scoring import is_passed, score_quiz
from .stores import AttemptStore, AttemptStoreError

__all__ = [
    "AnswerPair",
    "AttemptDecodeError",
    "AttemptPayload",
    "AttemptRecorder",
    "QuizAttempt",
    "StepContext",
    "build_attempt",
    "decode_answer_pairs",
    "deserialize_answers",
    "load_latest_attempt",
    "save_attempt",
    "serialize_answers",
]

_LOGGER = logging.getLogger(__name__)

AnswerPair = tuple[str, Any]


class AttemptDecodeError(RuntimeError):
    """Raised when a stored attempt cannot be decoded."""


@dataclass(frozen=True)
class StepContext:
    """Lesson step an attempt belongs to."""

    step_id: int | str
    course_id: int | str | None = None
    lesson_id: int | str | None = None


@dataclass(frozen=True)
class AttemptPayload:
    """Body submitted to the attempt store when a quiz run completes."""

    step_id: int | str
    course_id: int | str | None
    lesson_id: int | str | None
    quiz_title: str
    total_questions: int
    correct_answers: int
    score_percentage: float
    answers: tuple[AnswerPair, ...]
    time_spent_seconds: int

    @property
    def passed(self) -> bool:
        return is_passed(self.score_percentage)

    def to_dict(self) -> dict[str, Any]:
        return {
            "step_id": self.step_id,
            "course_id": self.course_id,
            "lesson_id": self.lesson_id,
            "quiz_title": self.quiz_title,
            "total_questions": self.total_questions,
            "correct_answers": self.correct_answers,
            "score_percentage": self.score_percentage,
            "answers": json.dumps(
                [[key, value] for key, value in self.answers]
            ),
            "time_spent_seconds": self.time_spent_seconds,
        }


@dataclass(frozen=True)
class QuizAttempt:
    """A stored attempt as returned by an attempt store."""

    step_id: int | str | None
    quiz_title: str
    total_questions: int
    correct_answers: int
    score_percentage: float
    answers: tuple[AnswerPair, ...]
    time_spent_seconds: int
    completed_at: str | None = None
    id: str | None = None

    @property
    def passed(self) -> bool:
        return is_passed(self.score_percentage)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "QuizAttempt":
        try:
            return cls(
                step_id=payload.get("step_id"),
                quiz_title=str(payload.get("quiz_title") or ""),
                total_questions=int(payload.get("total_questions") or 0),
                correct_answers=int(payload.get("correct_answers") or 0),
                score_percentage=float(payload.get("score_percentage") or 0),
                answers=tuple(decode_answer_pairs(payload.get("answers"))),
                time_spent_seconds=int(
                    payload.get("time_spent_seconds") or 0
                ),
                completed_at=_optional_str(payload.get("completed_at")),
                id=_optional_str(payload.get("id")),
            )
        except (TypeError, ValueError) as exc:
            raise AttemptDecodeError(
                f"Attempt record has invalid fields: {exc}"
            ) from exc


def decode_answer_pairs(raw: object) -> list[AnswerPair]:
    """Decode stored answers: JSON text, a pair list, or an object."""

    if raw is None or raw == "":
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise AttemptDecodeError(
                f"Stored answers are not valid JSON: {exc}"
            ) from exc
    if isinstance(raw, Mapping):
        return [(str(key), value) for key, value in raw.items()]
    if isinstance(raw, list):
        pairs: list[AnswerPair] = []
        for item in raw:
            if not isinstance(item, (list, tuple)) or len(item) != 2:
                raise AttemptDecodeError(
                    f"Stored answer entry is not a [key, value] pair: {item!r}"
                )
            pairs.append((str(item[0]), item[1]))
        return pairs
    raise AttemptDecodeError(
        f"Stored answers must be a list or object, found "
        f"{type(raw).__name__}."
    )


def serialize_answers(answers: AnswerState) -> tuple[AnswerPair, ...]:
    return tuple(answers.merged().items())


def deserialize_answers(
    pairs: Iterable[AnswerPair],
    quiz: Quiz,
    base: AnswerState | None = None,
) -> AnswerState:
    """Split stored pairs back into selections and gap lists.

    Pairs for gapped questions only restore when the value is a list; pairs
    for ids the quiz no longer knows land in the selections map.
    """

    state = base.copy() if base is not None else AnswerState()
    kinds = quiz.question_types()
    for key, value in pairs:
        kind = kinds.get(key)
        if kind is not None and kind.is_gapped:
            if isinstance(value, list):
                state.set_gaps(key, value)
            continue
        if isinstance(value, list):
            value = list(value)
        state.selections[key] = value
    return state


def build_attempt(
    quiz: Quiz,
    answers: AnswerState,
    elapsed_seconds: float,
    step: StepContext,
) -> AttemptPayload:
    score = score_quiz(quiz, answers)
    return AttemptPayload(
        step_id=step.step_id,
        course_id=step.course_id,
        lesson_id=step.lesson_id,
        quiz_title=quiz.title,
        total_questions=score.total_items,
        correct_answers=score.correct_items,
        score_percentage=score.score_percentage,
        answers=serialize_answers(answers),
        time_spent_seconds=max(0, int(elapsed_seconds)),
    )


def save_attempt(
    store: AttemptStore,
    quiz: Quiz,
    answers: AnswerState,
    elapsed_seconds: float,
    step: StepContext,
) -> QuizAttempt:
    """Score ``answers`` now and persist the attempt; errors propagate."""

    payload = build_attempt(quiz, answers, elapsed_seconds, step)
    return QuizAttempt.from_dict(store.save(payload.to_dict()))


def load_latest_attempt(
    store: AttemptStore,
    step_id: int | str,
    *,
    logger: logging.Logger | None = None,
) -> QuizAttempt | None:
    """Most recent attempt of ``step_id``; failures count as no attempt."""

    log = logger or _LOGGER
    try:
        records = store.list_for_step(step_id)
    except AttemptStoreError as exc:
        log.warning(
            "Failed to fetch quiz attempts",
            extra={"step_id": step_id, "error": str(exc)},
        )
        return None
    if not records:
        return None
    try:
        return QuizAttempt.from_dict(records[0])
    except AttemptDecodeError as exc:
        log.warning(
            "Ignoring corrupt quiz attempt",
            extra={"step_id": step_id, "error": str(exc)},
        )
        return None


class AttemptRecorder:
    """Fire-and-continue attempt submission.

    Save failures are logged and dropped; the learner keeps the locally
    computed result. With an ``executor`` the save runs in the background.
    """

    def __init__(
        self,
        store: AttemptStore,
        step: StepContext,
        *,
        executor: Executor | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.store = store
        self.step = step
        self._executor = executor
        self._logger = logger or _LOGGER
        self._pending: list[Future[QuizAttempt | None]] = []
        self.saved: list[QuizAttempt] = []

    def record(
        self, quiz: Quiz, answers: AnswerState, elapsed_seconds: float
    ) -> AttemptPayload:
        payload = build_attempt(
            quiz, answers.copy(), elapsed_seconds, self.step
        )
        if self._executor is None:
            self._submit(payload)
        else:
            self._pending.append(self._executor.submit(self._submit, payload))
        return payload

    def wait(self) -> None:
        """Block until background saves finish."""

        pending, self._pending = self._pending, []
        for future in pending:
            future.result()

    def _submit(self, payload: AttemptPayload) -> QuizAttempt | None:
        try:
            attempt = QuizAttempt.from_dict(self.store.save(payload.to_dict()))
        except (AttemptStoreError, AttemptDecodeError) as exc:
            self._logger.error(
                "Failed to save quiz attempt",
                extra={"step_id": payload.step_id, "error": str(exc)},
            )
            return None
        self.saved.append(attempt)
        self._logger.info(
            "Quiz attempt saved",
            extra={
                "step_id": payload.step_id,
                "score_percentage": payload.score_percentage,
                "correct_answers": payload.correct_answers,
                "total_questions": payload.total_questions,
            },
        )
        return attempt


def _optional_str(value: object) -> str | None:
    return None if value is None else str(value)
