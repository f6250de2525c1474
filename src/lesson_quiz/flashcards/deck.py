"""Flashcard sets and the study deck that walks through them."""

from __future__ import annotations

import json
import random
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

__all__ = [
    "BulkFlashcardResult",
    "Difficulty",
    "Flashcard",
    "FlashcardContentError",
    "FlashcardDeck",
    "FlashcardSet",
    "StudyMode",
    "flashcard_set_from_dict",
    "flashcard_set_from_json",
    "flashcard_set_to_dict",
    "order_cards",
    "parse_bulk_flashcards",
]


class FlashcardContentError(RuntimeError):
    """Raised when a flashcard set payload cannot be decoded."""


class Difficulty(str, Enum):
    EASY = "easy"
    NORMAL = "normal"
    HARD = "hard"

    @classmethod
    def from_value(cls, value: object) -> "Difficulty":
        if value is None or value == "":
            return cls.NORMAL
        normalized = str(value).strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        raise FlashcardContentError(f"Unknown difficulty '{value}'.")


class StudyMode(str, Enum):
    SEQUENTIAL = "sequential"
    RANDOM = "random"
    SPACED_REPETITION = "spaced_repetition"

    @classmethod
    def from_value(cls, value: object) -> "StudyMode":
        if value is None or value == "":
            return cls.SEQUENTIAL
        normalized = str(value).strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        expected = ", ".join(member.value for member in cls)
        raise FlashcardContentError(
            f"Unknown study mode '{value}'. Expected one of: {expected}."
        )


@dataclass(frozen=True)
class Flashcard:
    id: str
    front_text: str
    back_text: str
    difficulty: Difficulty = Difficulty.NORMAL
    order_index: int = 0
    tags: tuple[str, ...] = ()
    front_image_url: str | None = None
    back_image_url: str | None = None


@dataclass(frozen=True)
class FlashcardSet:
    title: str
    cards: tuple[Flashcard, ...]
    description: str | None = None
    study_mode: StudyMode = StudyMode.SEQUENTIAL
    auto_flip: bool = False
    show_progress: bool = True


@dataclass(frozen=True)
class BulkFlashcardResult:
    cards: tuple[Flashcard, ...]
    errors: tuple[str, ...]

    @property
    def ok(self) -> bool:
        return bool(self.cards) and not self.errors


_SPACED_ORDER = {
    Difficulty.HARD: 0,
    Difficulty.NORMAL: 1,
    Difficulty.EASY: 2,
}


def order_cards(
    flashcard_set: FlashcardSet, *, seed: int | None = None
) -> tuple[Flashcard, ...]:
    """Cards in the order the set's study mode presents them.

    ``sequential`` follows ``order_index``; ``random`` shuffles with
    ``seed``; ``spaced_repetition`` puts hard cards first and easy cards
    last, keeping ``order_index`` order within a difficulty.
    """

    cards = sorted(flashcard_set.cards, key=lambda card: card.order_index)
    mode = flashcard_set.study_mode
    if mode is StudyMode.RANDOM:
        random.Random(seed).shuffle(cards)
    elif mode is StudyMode.SPACED_REPETITION:
        cards.sort(key=lambda card: _SPACED_ORDER[card.difficulty])
    return tuple(cards)


class FlashcardDeck:
    """Study progress over an ordered run of cards.

    Marking a card known or unknown moves on to the next card. After the
    last card the deck jumps back to the first card still marked unknown;
    when none is left it stays on the last card.
    """

    def __init__(
        self, flashcard_set: FlashcardSet, *, seed: int | None = None
    ) -> None:
        self.flashcard_set = flashcard_set
        self.cards = order_cards(flashcard_set, seed=seed)
        self.index = 0
        self.flipped = False
        self.completed: set[str] = set()
        self.incorrect: set[str] = set()

    @property
    def total(self) -> int:
        return len(self.cards)

    @property
    def current_card(self) -> Flashcard | None:
        if 0 <= self.index < len(self.cards):
            return self.cards[self.index]
        return None

    @property
    def progress_percentage(self) -> float:
        if not self.cards:
            return 0.0
        return len(self.completed) / len(self.cards) * 100

    @property
    def is_complete(self) -> bool:
        return bool(self.cards) and len(self.completed) == len(self.cards)

    def flip(self) -> bool:
        self.flipped = not self.flipped
        return self.flipped

    def mark_known(self) -> None:
        card = self._require_card()
        self.completed.add(card.id)
        self.incorrect.discard(card.id)
        self.next()

    def mark_unknown(self) -> None:
        card = self._require_card()
        self.incorrect.add(card.id)
        self.next()

    def next(self) -> None:
        self.flipped = False
        if self.index < len(self.cards) - 1:
            self.index += 1
            return
        for position, card in enumerate(self.cards):
            if card.id in self.incorrect:
                self.index = position
                return

    def previous(self) -> None:
        if self.index > 0:
            self.index -= 1
            self.flipped = False

    def reset(self) -> None:
        self.completed.clear()
        self.incorrect.clear()
        self.index = 0
        self.flipped = False

    def _require_card(self) -> Flashcard:
        card = self.current_card
        if card is None:
            raise FlashcardContentError("The flashcard set has no cards.")
        return card


def parse_bulk_flashcards(
    text: str, *, start_index: int = 0
) -> BulkFlashcardResult:
    """Pair non-blank lines into cards: front, back, front, back, ..."""

    lines = [line.strip() for line in text.split("\n")]
    lines = [line for line in lines if line]
    if len(lines) % 2:
        return BulkFlashcardResult(
            (),
            (
                "Expected even number of lines (pairs of front/back). "
                f"Found {len(lines)} lines.",
            ),
        )

    cards = tuple(
        Flashcard(
            id=f"bulk_{start_index + number}",
            front_text=lines[position],
            back_text=lines[position + 1],
            order_index=start_index + number,
        )
        for number, position in enumerate(range(0, len(lines), 2))
    )
    return BulkFlashcardResult(cards, ())


def flashcard_set_from_dict(payload: Mapping[str, Any]) -> FlashcardSet:
    if not isinstance(payload, Mapping):
        raise FlashcardContentError("Flashcard content must be a JSON object.")
    raw_cards = payload.get("cards")
    if raw_cards is None:
        raw_cards = []
    if not isinstance(raw_cards, list):
        raise FlashcardContentError("Flashcard 'cards' must be a list.")
    return FlashcardSet(
        title=str(payload.get("title") or ""),
        description=_optional_str(payload.get("description")),
        cards=tuple(
            _card_from_dict(item, index)
            for index, item in enumerate(raw_cards)
        ),
        study_mode=StudyMode.from_value(payload.get("study_mode")),
        auto_flip=bool(payload.get("auto_flip", False)),
        show_progress=bool(payload.get("show_progress", True)),
    )


def flashcard_set_from_json(text: str) -> FlashcardSet:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise FlashcardContentError(
            f"Flashcard content is not valid JSON: {exc}"
        ) from exc
    return flashcard_set_from_dict(payload)


def flashcard_set_to_dict(flashcard_set: FlashcardSet) -> dict[str, Any]:
    return {
        "title": flashcard_set.title,
        "description": flashcard_set.description,
        "study_mode": flashcard_set.study_mode.value,
        "auto_flip": flashcard_set.auto_flip,
        "show_progress": flashcard_set.show_progress,
        "cards": [_card_to_dict(card) for card in flashcard_set.cards],
    }


def _card_from_dict(payload: object, index: int) -> Flashcard:
    if not isinstance(payload, Mapping):
        raise FlashcardContentError(f"Card {index + 1} must be an object.")
    raw_tags = payload.get("tags")
    if raw_tags is None:
        raw_tags = []
    if not isinstance(raw_tags, list):
        raise FlashcardContentError(f"Card {index + 1} tags must be a list.")
    raw_order = payload.get("order_index")
    return Flashcard(
        id=str(payload.get("id") or f"card-{index + 1}"),
        front_text=str(payload.get("front_text") or ""),
        back_text=str(payload.get("back_text") or ""),
        difficulty=Difficulty.from_value(payload.get("difficulty")),
        order_index=raw_order if isinstance(raw_order, int) else index,
        tags=tuple(str(tag) for tag in raw_tags),
        front_image_url=_optional_str(payload.get("front_image_url")),
        back_image_url=_optional_str(payload.get("back_image_url")),
    )


def _card_to_dict(card: Flashcard) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": card.id,
        "front_text": card.front_text,
        "back_text": card.back_text,
        "difficulty": card.difficulty.value,
        "order_index": card.order_index,
        "tags": list(card.tags),
    }
    if card.front_image_url:
        payload["front_image_url"] = card.front_image_url
    if card.back_image_url:
        payload["back_image_url"] = card.back_image_url
    return payload


def _optional_str(value: object) -> str | None:
    return None if value is None else str(value)
