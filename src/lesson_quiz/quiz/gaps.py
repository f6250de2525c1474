"""Gap grammar: ``[[option, option*, ...]]`` blanks embedded in passages.

A gap body is a ``separator``-joined list of tokens. The last token that
contains ``*`` is the correct one; without a marker the first token is.
Tokens may carry inline HTML, which is stripped before comparison or display.

``extract_gap_answers`` is the single cleaning path used both when an editor
caches a question's answers and when a submission is graded.
"""

from __future__ import annotations

import itertools
import re
from dataclasses import dataclass
from typing import Callable, Iterator

__all__ = [
    "CORRECT_MARKER",
    "DEFAULT_SEPARATOR",
    "GAP_PATTERN",
    "GapSpan",
    "ParsedGap",
    "convert_single_brackets",
    "count_gaps",
    "extract_gap_answers",
    "iter_gaps",
    "mask_gaps",
    "parse_gap",
    "strip_markup",
]

DEFAULT_SEPARATOR = ","
CORRECT_MARKER = "*"
GAP_PATTERN = re.compile(r"\[\[(.*?)\]\]")

_ENTITIES = (
    ("&nbsp;", " "),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&amp;", "&"),
    ("&quot;", '"'),
    ("&#39;", "'"),
)
_TAG = re.compile(r"<[^>]*>")
_OPEN_TAIL = re.compile(r"<[^>]*$")
_CLOSE_HEAD = re.compile(r"^[^<]*>")
_BETWEEN_TAGS = re.compile(r">[^<]*<")
_ANGLES = re.compile(r"[<>]")
_SINGLE_BRACKETS = re.compile(r"(?<!\[)\[([^\[\]]+)\](?!\])")


@dataclass(frozen=True)
class ParsedGap:
    """Options of one gap and the option designated as correct."""

    options: tuple[str, ...]
    correct_option: str
    marker_count: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.options


@dataclass(frozen=True)
class GapSpan:
    """A gap located inside a passage."""

    index: int
    start: int
    end: int
    body: str
    parsed: ParsedGap


def strip_markup(text: str) -> str:
    """Decode the common entities and drop tag-like fragments."""

    for entity, char in _ENTITIES:
        text = text.replace(entity, char)
    text = _TAG.sub("", text)
    text = _OPEN_TAIL.sub("", text)
    text = _CLOSE_HEAD.sub("", text)
    text = _BETWEEN_TAGS.sub("><", text)
    text = _ANGLES.sub("", text)
    return text.strip()


def parse_gap(body: str, separator: str = DEFAULT_SEPARATOR) -> ParsedGap:
    """Parse the text between ``[[`` and ``]]``.

    When the marked token cleans to nothing (or no token survives cleaning)
    the correct option falls back to the first option, then to ``""``.
    """

    separator = separator or DEFAULT_SEPARATOR
    tokens = [token.strip() for token in body.split(separator)]
    tokens = [token for token in tokens if token]

    marked = [i for i, token in enumerate(tokens) if CORRECT_MARKER in token]
    correct_index = marked[-1] if marked else 0

    cleaned = [
        strip_markup(token.replace(CORRECT_MARKER, "")) for token in tokens
    ]
    options = tuple(option for option in cleaned if option)

    candidate = cleaned[correct_index] if cleaned else ""
    if candidate and candidate in options:
        correct = candidate
    elif options:
        correct = options[0]
    else:
        correct = ""
    return ParsedGap(options, correct, len(marked))


def iter_gaps(
    text: str | None, separator: str = DEFAULT_SEPARATOR
) -> Iterator[GapSpan]:
    for index, match in enumerate(GAP_PATTERN.finditer(text or "")):
        body = match.group(1)
        yield GapSpan(
            index=index,
            start=match.start(),
            end=match.end(),
            body=body,
            parsed=parse_gap(body, separator),
        )


def extract_gap_answers(
    text: str | None, separator: str = DEFAULT_SEPARATOR
) -> list[str]:
    """Return the correct option of every gap in ``text``, left to right."""

    return [gap.parsed.correct_option for gap in iter_gaps(text, separator)]


def count_gaps(text: str | None) -> int:
    return sum(1 for _ in GAP_PATTERN.finditer(text or ""))


def mask_gaps(
    text: str | None,
    placeholder: str | Callable[[int], str] = "____",
) -> str:
    """Replace every gap with ``placeholder``.

    A callable placeholder receives the 1-based gap number.
    """

    counter = itertools.count(1)

    def _replace(_match: re.Match[str]) -> str:
        number = next(counter)
        if callable(placeholder):
            return placeholder(number)
        return placeholder

    return GAP_PATTERN.sub(_replace, text or "")


def convert_single_brackets(text: str) -> str:
    """Turn ``[answer]`` into ``[[answer]]``, leaving existing gaps alone."""

    return _SINGLE_BRACKETS.sub(r"[[\1]]", text)
