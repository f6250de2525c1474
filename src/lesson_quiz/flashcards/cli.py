"""Command-line entry point for studying flashcard sets."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Sequence

from rich.console import Console

from .deck import (
    FlashcardContentError,
    FlashcardDeck,
    FlashcardSet,
    flashcard_set_from_json,
    flashcard_set_to_dict,
    parse_bulk_flashcards,
)
from .session import run_flashcard_session


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lesson-quiz flashcards",
        description=(
            "Study a flashcard set in the terminal, or build one from "
            "front/back line pairs with --import-bulk."
        ),
    )
    parser.add_argument(
        "deck",
        type=Path,
        help="Flashcard set JSON file (written to when importing).",
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Shuffle seed for sets using the random study mode.",
    )
    parser.add_argument(
        "--import-bulk",
        dest="bulk_source",
        type=Path,
        help="Plain-text file with alternating front and back lines.",
    )
    parser.add_argument(
        "--title",
        default="",
        help="Title for a set created by --import-bulk.",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite the deck file when importing.",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.bulk_source is not None:
        return _import_bulk(args)

    try:
        flashcard_set = flashcard_set_from_json(
            args.deck.read_text(encoding="utf-8")
        )
    except (OSError, FlashcardContentError) as exc:
        sys.stderr.write(str(exc) + "\n")
        return 1

    console = Console()
    result = run_flashcard_session(
        FlashcardDeck(flashcard_set, seed=args.seed),
        console,
        lambda: console.input("[bold cyan]> [/]"),
    )
    console.print(f"Learned {result.completed} of {result.total} card(s).")
    return 0


def _import_bulk(args: argparse.Namespace) -> int:
    try:
        text = args.bulk_source.read_text(encoding="utf-8")
    except OSError as exc:
        sys.stderr.write(f"Unable to read {args.bulk_source}: {exc}\n")
        return 1

    result = parse_bulk_flashcards(text)
    if not result.ok:
        for message in result.errors or ("No flashcards found.",):
            sys.stderr.write(message + "\n")
        return 1

    target: Path = args.deck.expanduser()
    if target.exists() and not args.force:
        sys.stderr.write(
            f"{target} already exists. Use --force to overwrite it.\n"
        )
        return 2
    flashcard_set = FlashcardSet(
        title=args.title or args.bulk_source.stem, cards=result.cards
    )
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(
            json.dumps(
                flashcard_set_to_dict(flashcard_set),
                indent=2,
                ensure_ascii=False,
            )
            + "\n",
            encoding="utf-8",
        )
    except OSError as exc:
        sys.stderr.write(f"Unable to write {target}: {exc}\n")
        return 1
    sys.stdout.write(f"Imported {len(result.cards)} card(s) to {target}\n")
    return 0


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
