"""Bulk import of single-choice passage questions from plain text.

Each block starts with ``N.`` or ``N.M`` followed by the passage on the same
line, then exactly four option lines. Options may carry an ``A)`` prefix and
the correct one ends with ``+`` (option A when none does)::

    1.1 The committee ___ reached a decision.
    A) has +
    B) have
    C) having
    D) had
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .models import ChoiceOption, Quiz, SingleChoiceQuestion

__all__ = [
    "BulkImportResult",
    "parse_bulk_questions",
]

_BLOCK_START = re.compile(r"(?=^\d+\.(?:\d+\s|\s))", re.MULTILINE)
_NUMBER = re.compile(r"^(\d+)\.(\d+)?\s")
_OPTION_PREFIX = re.compile(r"^[A-D]\)\s*")
_LETTERS = "ABCD"
_CORRECT_SUFFIX = "+"


@dataclass(frozen=True)
class BulkImportResult:
    questions: tuple[SingleChoiceQuestion, ...]
    errors: tuple[str, ...]

    @property
    def ok(self) -> bool:
        return bool(self.questions) and not self.errors

    def to_quiz(self, title: str) -> Quiz:
        return Quiz(title=title, questions=self.questions)


def parse_bulk_questions(
    text: str, *, start_index: int = 0
) -> BulkImportResult:
    questions: list[SingleChoiceQuestion] = []
    errors: list[str] = []

    for block in _BLOCK_START.split(text):
        block = block.strip()
        if not block:
            continue
        match = _NUMBER.match(block)
        if match is None:
            # Headers or instructions between numbered blocks.
            continue
        number = match.group(1)
        if match.group(2):
            number = f"{number}.{match.group(2)}"

        lines = block.split("\n")
        passage = lines[0][match.end():].strip()
        option_lines = [line for line in lines[1:] if line.strip()]
        if len(option_lines) != len(_LETTERS):
            errors.append(
                f"Question {number}: Expected 4 options, found "
                f"{len(option_lines)}"
            )
            continue

        options: list[ChoiceOption] = []
        correct_index = 0
        for index, line in enumerate(option_lines):
            option_text = _OPTION_PREFIX.sub("", line.strip()).strip()
            if option_text.endswith(_CORRECT_SUFFIX):
                option_text = option_text[:-1].strip()
                correct_index = index
            letter = _LETTERS[index]
            options.append(
                ChoiceOption(
                    id=f"bulk_{number.replace('.', '_')}_{letter}",
                    text=option_text,
                    letter=letter,
                )
            )

        questions.append(
            SingleChoiceQuestion(
                id=f"bulk_{number.replace('.', '_')}",
                prompt_text=f"Question {number}",
                content_text=passage,
                order_index=start_index + len(questions),
                options=tuple(options),
                correct_answer=correct_index,
            )
        )

    if not questions and not errors:
        errors.append("No valid questions found. Please check the format.")
    return BulkImportResult(tuple(questions), tuple(errors))
