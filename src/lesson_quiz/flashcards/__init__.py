from .deck import (
    BulkFlashcardResult,
    Difficulty,
    Flashcard,
    FlashcardContentError,
    FlashcardDeck,
    FlashcardSet,
    StudyMode,
    flashcard_set_from_dict,
    flashcard_set_from_json,
    flashcard_set_to_dict,
    order_cards,
    parse_bulk_flashcards,
)
from .session import FlashcardSessionResult, run_flashcard_session

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
    "FlashcardSessionResult",
    "run_flashcard_session",
]
