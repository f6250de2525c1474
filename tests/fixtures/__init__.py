"""Shared testing fixtures for the lesson_quiz test suite."""

from .quizzes import (  # noqa: F401
    FakeClock,
    MemoryAttemptStore,
    choice_question,
    fill_blank_question,
    long_text_question,
    quiz_payload,
    short_answer_question,
)
from .workspace import WorkspaceBuilder, build_tree  # noqa: F401

__all__ = [
    "FakeClock",
    "MemoryAttemptStore",
    "WorkspaceBuilder",
    "build_tree",
    "choice_question",
    "fill_blank_question",
    "long_text_question",
    "quiz_payload",
    "short_answer_question",
]
