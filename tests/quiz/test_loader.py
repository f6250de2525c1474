from __future__ import annotations

import json

import pytest

from fixtures import choice_question, quiz_payload
from lesson_quiz.quiz.attempts import StepContext, save_attempt
from lesson_quiz.quiz.loader import (
    StepTracker,
    load_player,
    quiz_from_step_content,
)
from lesson_quiz.quiz.models import QuizContentError, initial_answer_state
from lesson_quiz.quiz.player import PlayerState


def test_tracker_tickets_expire_on_new_activation():
    tracker = StepTracker()

    first = tracker.activate(1)
    assert first.is_current
    assert tracker.active_step == 1

    second = tracker.activate(2)
    assert not first.is_current
    assert second.is_current

    tracker.deactivate()
    assert not second.is_current
    assert tracker.active_step is None


def test_quiz_from_step_content_accepts_text_and_mapping():
    payload = quiz_payload(choice_question(), title="From step")

    assert quiz_from_step_content(json.dumps(payload)).title == "From step"
    assert quiz_from_step_content(payload).questions[0].id == "q1"
    with pytest.raises(QuizContentError, match="Step content"):
        quiz_from_step_content("not json")


def test_fresh_one_by_one_quiz_starts_on_title(mixed_quiz, memory_store):
    ticket = StepTracker().activate(5)

    player = load_player(mixed_quiz, memory_store, StepContext(5), ticket)

    assert player is not None
    assert player.state is PlayerState.TITLE
    assert player.answers.gaps == {"gaps": ["", ""]}


def test_fresh_all_at_once_quiz_starts_immediately(
    feed_quiz, memory_store, clock
):
    ticket = StepTracker().activate(5)

    player = load_player(
        feed_quiz, memory_store, StepContext(5), ticket, clock=clock
    )

    assert player is not None
    assert player.state is PlayerState.FEED
    assert player.started_at == clock.now


def test_latest_attempt_is_restored(mixed_quiz, memory_store):
    step = StepContext(step_id=5)
    answers = initial_answer_state(mixed_quiz)
    answers.set_selection("q1", 0)
    answers.set_gaps("gaps", ["cat", "mat"])
    answers.set_selection("short", "Rome")
    save_attempt(memory_store, mixed_quiz, answers, 20, step)
    ticket = StepTracker().activate(5)

    player = load_player(mixed_quiz, memory_store, step, ticket)

    assert player is not None
    assert player.state is PlayerState.COMPLETED
    assert player.outcome is not None
    assert player.outcome.restored
    assert player.outcome.score_percentage == 75.0
    assert player.answers.gap_values("gaps") == ["cat", "mat"]
    assert player.answers.selection("short") == "Rome"
    assert len(memory_store.saved_payloads) == 1


def test_failed_fetch_falls_back_to_fresh_state(feed_quiz, memory_store):
    memory_store.fail_list = True
    ticket = StepTracker().activate(5)

    player = load_player(feed_quiz, memory_store, StepContext(5), ticket)

    assert player is not None
    assert player.state is PlayerState.FEED
    assert player.outcome is None


def test_stale_activation_is_discarded(mixed_quiz, memory_store):
    tracker = StepTracker()
    ticket = tracker.activate(5)

    class SwitchingStore:
        def list_for_step(self, step_id):
            tracker.activate(6)
            return memory_store.list_for_step(step_id)

        def save(self, payload):
            return memory_store.save(payload)

    player = load_player(
        mixed_quiz, SwitchingStore(), StepContext(5), ticket
    )

    assert player is None
    assert tracker.active_step == 6
