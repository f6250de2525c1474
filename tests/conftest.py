from __future__ import annotations

import sys
from pathlib import Path
from typing import Iterator

import pytest

TESTS_DIR = Path(__file__).resolve().parent
if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))

# Keep src/ importable when the package is not installed
SRC_DIR = TESTS_DIR.parent / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from fixtures import (  # noqa: E402
    FakeClock,
    MemoryAttemptStore,
    WorkspaceBuilder,
    choice_question,
    fill_blank_question,
    quiz_payload,
    short_answer_question,
)
from lesson_quiz.quiz.models import Quiz, quiz_from_dict  # noqa: E402

_ENV_KEYS = (
    "LESSON_QUIZ_DATA_HOME",
    "LESSON_QUIZ_CONFIG",
    "LESSON_QUIZ_STORAGE_BACKEND",
    "LESSON_QUIZ_ATTEMPTS_DIR",
    "LESSON_QUIZ_API_URL",
    "LESSON_QUIZ_API_TOKEN",
    "LESSON_QUIZ_ROLE",
    "LESSON_QUIZ_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path: Path, monkeypatch) -> Iterator[None]:
    """Keep every test away from the real workspace and API settings."""

    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("LESSON_QUIZ_DATA_HOME", str(tmp_path / "data-home"))
    yield


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceBuilder:
    """Provide a helper bound to pytest's per-test tmp directory."""

    return WorkspaceBuilder(tmp_path)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store() -> MemoryAttemptStore:
    return MemoryAttemptStore()


@pytest.fixture
def mixed_quiz() -> Quiz:
    """Two regular questions plus a two-gap passage: four graded items."""

    return quiz_from_dict(
        quiz_payload(
            choice_question("q1", 0),
            fill_blank_question("gaps"),
            short_answer_question("short", "Paris"),
        )
    )


@pytest.fixture
def feed_quiz() -> Quiz:
    return quiz_from_dict(
        quiz_payload(
            choice_question("q1", 0),
            choice_question("q2", [0, 2], kind="multiple_choice"),
            display_mode="all_at_once",
        )
    )
