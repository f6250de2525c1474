"""Display numbering where each gap occupies its own question number."""

from __future__ import annotations

from .models import FillBlankQuestion, Question, Quiz, TextCompletionQuestion

__all__ = [
    "display_label",
    "display_number",
    "display_range",
    "gap_units",
    "progress_percentage",
    "total_item_count",
]


def gap_units(question: Question) -> int:
    """Display slots ``question`` takes; gapped ones take at least one."""

    if isinstance(question, (FillBlankQuestion, TextCompletionQuestion)):
        return max(question.gap_count(), 1)
    return 1


def total_item_count(quiz: Quiz) -> int:
    return sum(gap_units(question) for question in quiz.questions)


def display_range(quiz: Quiz, index: int) -> tuple[int, int]:
    """First and last 1-based display number for the question at ``index``."""

    if not 0 <= index < len(quiz.questions):
        raise IndexError(f"Question index {index} is out of range.")
    start = 1 + sum(gap_units(q) for q in quiz.questions[:index])
    return start, start + gap_units(quiz.questions[index]) - 1


def display_number(quiz: Quiz, index: int) -> int:
    return display_range(quiz, index)[0]


def display_label(quiz: Quiz, index: int) -> str:
    start, end = display_range(quiz, index)
    total = total_item_count(quiz)
    if start == end:
        return f"Question {start} of {total}"
    return f"Questions {start}-{end} of {total}"


def progress_percentage(quiz: Quiz, index: int) -> float:
    total = total_item_count(quiz)
    if total == 0:
        return 0.0
    _, end = display_range(quiz, index)
    return end / total * 100
