"""Rich console loop for studying a flashcard deck."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Literal, assert_never

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from .deck import Difficulty, FlashcardDeck

__all__ = [
    "FlashcardSessionResult",
    "parse_flashcard_command",
    "run_flashcard_session",
]

InputProvider = Callable[[], str]
FlashcardCommand = Literal[
    "flip", "known", "unknown", "next", "previous", "reset", "quit", "help"
]

_COMMANDS: dict[str, FlashcardCommand] = {
    "": "flip",
    "f": "flip",
    "/flip": "flip",
    "k": "known",
    "/known": "known",
    "u": "unknown",
    "/unknown": "unknown",
    "n": "next",
    "/next": "next",
    "p": "previous",
    "/prev": "previous",
    "/reset": "reset",
    "q": "quit",
    "/quit": "quit",
    "/exit": "quit",
    "?": "help",
    "/help": "help",
}
_DIFFICULTY_STYLES = {
    Difficulty.EASY: "green",
    Difficulty.NORMAL: "blue",
    Difficulty.HARD: "red",
}


@dataclass(frozen=True)
class FlashcardSessionResult:
    completed: int
    total: int
    exit_action: Literal["completed", "quit", "empty"]

    @property
    def is_complete(self) -> bool:
        return self.total > 0 and self.completed == self.total


def parse_flashcard_command(raw: str | None) -> FlashcardCommand | None:
    if raw is None:
        return None
    return _COMMANDS.get(raw.strip().lower())


def run_flashcard_session(
    deck: FlashcardDeck,
    console: Console,
    input_provider: InputProvider,
) -> FlashcardSessionResult:
    """Study ``deck`` until every card is known or the learner quits."""

    title = deck.flashcard_set.title or "Flashcards"
    if not deck.cards:
        console.print(
            Panel("This set has no cards.", title=title, border_style="yellow")
        )
        return FlashcardSessionResult(0, 0, "empty")

    if deck.flashcard_set.description:
        console.print(Text(deck.flashcard_set.description, style="dim"))

    while True:
        _render_card(console, deck, title)
        try:
            raw = input_provider()
        except (EOFError, KeyboardInterrupt, StopIteration):
            console.print("\n[bold yellow]Session interrupted.[/]")
            return _result(deck, "quit")

        command = parse_flashcard_command(raw)
        if command is None:
            console.print("[red]Unrecognized command. Type /help.[/]")
            continue
        if command == "quit":
            return _result(deck, "quit")
        _apply_command(command, deck, console)
        if deck.is_complete:
            console.print(
                Panel(
                    f"All {deck.total} cards learned!",
                    title=title,
                    border_style="green",
                )
            )
            return _result(deck, "completed")


def _apply_command(
    command: FlashcardCommand, deck: FlashcardDeck, console: Console
) -> None:
    if command == "flip":
        deck.flip()
    elif command == "known":
        deck.mark_known()
    elif command == "unknown":
        deck.mark_unknown()
    elif command == "next":
        deck.next()
    elif command == "previous":
        deck.previous()
    elif command == "reset":
        deck.reset()
        console.print("[yellow]Progress reset.[/]")
    elif command == "help":
        console.print(
            "Enter or /flip shows the other side; k marks the card known, "
            "u unknown; n and p move between cards; /reset starts over; "
            "q quits."
        )
    elif command == "quit":
        return
    else:
        assert_never(command)


def _render_card(console: Console, deck: FlashcardDeck, title: str) -> None:
    card = deck.current_card
    assert card is not None
    console.print()
    header = Text.assemble(
        (title, "bold cyan"),
        (f"  Card {deck.index + 1} of {deck.total}", "dim"),
    )
    console.rule(header)
    if deck.flashcard_set.show_progress:
        console.print(
            Text(
                f"Learned {len(deck.completed)}/{deck.total} "
                f"({deck.progress_percentage:.0f}%)",
                style="dim",
            )
        )

    side = "Back" if deck.flipped else "Front"
    body = Text(card.back_text if deck.flipped else card.front_text)
    image = card.back_image_url if deck.flipped else card.front_image_url
    if image:
        body.append(f"\n\nImage: {image}", style="magenta")
    subtitle = Text(
        card.difficulty.value, style=_DIFFICULTY_STYLES[card.difficulty]
    )
    if card.tags:
        subtitle.append("  " + ", ".join(card.tags), style="dim")
    console.print(
        Panel(
            body,
            title=side,
            subtitle=subtitle,
            box=box.ROUNDED,
            border_style="red" if card.id in deck.incorrect else "cyan",
        )
    )
    console.print(
        Text("Enter flip | k known | u unknown | n/p move | q quit", "dim")
    )


def _result(
    deck: FlashcardDeck, action: Literal["completed", "quit", "empty"]
) -> FlashcardSessionResult:
    return FlashcardSessionResult(len(deck.completed), deck.total, action)
