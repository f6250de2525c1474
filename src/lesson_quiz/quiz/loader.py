"""Step activation: restore the latest attempt or start a fresh run."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from .attempts import (
    AttemptRecorder,
    StepContext,
    deserialize_answers,
    load_latest_attempt,
)
from .models import (
    DisplayMode,
    Quiz,
    QuizContentError,
    initial_answer_state,
    quiz_from_dict,
)
from .player import QuizPlayer
from .stores import AttemptStore

__all__ = [
    "ActivationTicket",
    "StepTracker",
    "load_player",
    "quiz_from_step_content",
]

_LOGGER = logging.getLogger(__name__)


class StepTracker:
    """Tracks which lesson step is active.

    Each activation hands out a ticket; work started for an older ticket
    must be dropped once a newer step (or no step) is active.
    """

    def __init__(self) -> None:
        self._generation = 0
        self.active_step: int | str | None = None

    @property
    def generation(self) -> int:
        return self._generation

    def activate(self, step_id: int | str) -> "ActivationTicket":
        self._generation += 1
        self.active_step = step_id
        return ActivationTicket(self, step_id, self._generation)

    def deactivate(self) -> None:
        self._generation += 1
        self.active_step = None


@dataclass(frozen=True)
class ActivationTicket:
    tracker: StepTracker
    step_id: int | str
    generation: int

    @property
    def is_current(self) -> bool:
        return self.tracker.generation == self.generation


def quiz_from_step_content(content: str | Mapping[str, Any]) -> Quiz:
    """Parse the quiz stored in a step's content field."""

    if isinstance(content, str):
        try:
            content = json.loads(content)
        except json.JSONDecodeError as exc:
            raise QuizContentError(
                f"Step content is not valid JSON: {exc}"
            ) from exc
    return quiz_from_dict(content)  # type: ignore[arg-type]


def load_player(
    quiz: Quiz,
    store: AttemptStore,
    step: StepContext,
    ticket: ActivationTicket,
    *,
    recorder: AttemptRecorder | None = None,
    allow_review: bool = True,
    clock: Callable[[], float] = time.monotonic,
    logger: logging.Logger | None = None,
) -> QuizPlayer | None:
    """Build the player for an activated step.

    The attempt fetch completes before any answer state is handed out, so a
    restored run never shows a fresh state first. Returns ``None`` when the
    step was left while the fetch was running.
    """

    log = logger or _LOGGER
    base = initial_answer_state(quiz)
    attempt = load_latest_attempt(store, step.step_id, logger=log)
    if not ticket.is_current:
        log.info(
            "Discarding quiz load for an inactive step",
            extra={"step_id": step.step_id},
        )
        return None

    player = QuizPlayer(
        quiz,
        base,
        recorder=recorder,
        clock=clock,
        allow_review=allow_review,
        logger=log,
    )
    if attempt is not None:
        player.restore(
            attempt, deserialize_answers(attempt.answers, quiz, base=base)
        )
        log.info(
            "Restored previous quiz attempt",
            extra={
                "step_id": step.step_id,
                "score_percentage": attempt.score_percentage,
                "completed_at": attempt.completed_at,
            },
        )
        return player

    if quiz.display_mode is DisplayMode.ALL_AT_ONCE and quiz.questions:
        player.start()
    return player
