"""Rich console front end for the quiz player.

The loop renders whatever state the :class:`QuizPlayer` reports, reads one
line of input, and maps it onto a player transition. Plain input answers the
current question (letters for choice questions, ``|``-separated values for
gaps, free text otherwise); in the all-at-once feed it takes the form
``N: answer``. Slash commands drive the transitions.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Literal, assert_never

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from . import scoring
from .gaps import mask_gaps
from .models import (
    FillBlankQuestion,
    LongTextQuestion,
    MediaQuestion,
    MultipleChoiceQuestion,
    Question,
    ShortAnswerQuestion,
    SingleChoiceQuestion,
    TextCompletionQuestion,
)
from .numbering import display_label, progress_percentage, total_item_count
from .player import PlayerState, QuizOutcome, QuizPlayer, QuizStateError

__all__ = [
    "QuizSessionResult",
    "SessionCommand",
    "parse_session_command",
    "run_quiz_session",
]

InputProvider = Callable[[], str]
ExitAction = Literal["completed", "quit", "empty"]
CommandType = Literal[
    "start",
    "check",
    "next",
    "finish",
    "retry",
    "review",
    "back",
    "continue",
    "quit",
    "help",
    "answer",
]

_SLASH_COMMANDS: dict[str, CommandType] = {
    "/start": "start",
    "/check": "check",
    "/next": "next",
    "/finish": "finish",
    "/submit": "finish",
    "/retry": "retry",
    "/review": "review",
    "/back": "back",
    "/continue": "continue",
    "/quit": "quit",
    "/exit": "quit",
    "/help": "help",
}
_TARGETED_ANSWER = re.compile(r"^(\d+)\s*:\s*(.*)$", re.DOTALL)
_LETTER_SPLIT = re.compile(r"[\s,;]+")


@dataclass(frozen=True)
class SessionCommand:
    """Normalized user command parsed from console input."""

    type: CommandType
    value: str | None = None
    target: int | None = None


@dataclass(frozen=True)
class QuizSessionResult:
    outcome: QuizOutcome | None
    exit_action: ExitAction
    can_proceed: bool = False


def parse_session_command(raw: str | None) -> SessionCommand | None:
    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None
    if text.startswith("/"):
        command = _SLASH_COMMANDS.get(text.split()[0].lower())
        return SessionCommand(command) if command else None
    targeted = _TARGETED_ANSWER.match(text)
    if targeted:
        return SessionCommand(
            "answer", targeted.group(2).strip(), int(targeted.group(1))
        )
    return SessionCommand("answer", text)


def run_quiz_session(
    player: QuizPlayer,
    console: Console,
    input_provider: InputProvider,
    *,
    role: str | None = None,
) -> QuizSessionResult:
    """Drive ``player`` interactively until the learner leaves."""

    if not player.quiz.questions:
        console.print(
            Panel(
                "This quiz has no questions.",
                title=player.quiz.title or "Quiz",
                border_style="yellow",
            )
        )
        return QuizSessionResult(None, "empty", player.can_proceed(role))

    exit_action: ExitAction = "quit"
    while True:
        _render(console, player, role)
        try:
            raw = input_provider()
        except (EOFError, KeyboardInterrupt, StopIteration):
            console.print("\n[bold yellow]Session interrupted.[/]")
            break
        command = parse_session_command(raw)
        if command is None:
            console.print("[red]Unrecognized command. Type /help.[/]")
            continue
        try:
            exit_candidate = _apply_command(command, player, console, role)
        except QuizStateError as exc:
            console.print(f"[red]{exc}[/red]")
            continue
        if exit_candidate:
            exit_action = exit_candidate
            break

    return QuizSessionResult(
        player.outcome, exit_action, player.can_proceed(role)
    )


def _apply_command(
    command: SessionCommand,
    player: QuizPlayer,
    console: Console,
    role: str | None,
) -> ExitAction | None:
    if command.type == "answer":
        _apply_answer(command, player, console)
    elif command.type == "start":
        player.start()
    elif command.type == "check":
        correct = player.check_answer()
        console.print(
            "[bold green]Correct![/]" if correct else "[bold red]Incorrect.[/]"
        )
    elif command.type == "next":
        player.next_question()
    elif command.type == "finish":
        player.finish_quiz()
    elif command.type == "retry":
        player.reset_quiz()
    elif command.type == "review":
        player.review_quiz()
    elif command.type == "back":
        player.close_review()
    elif command.type == "continue":
        if player.state is not PlayerState.COMPLETED:
            raise QuizStateError("Finish the quiz before continuing.")
        if not player.can_proceed(role):
            console.print(
                "[yellow]Score at least "
                f"{scoring.PASS_THRESHOLD:.0f}% to continue. "
                "Type /retry to try again.[/]"
            )
            return None
        return "completed"
    elif command.type == "quit":
        console.print("\n[bold yellow]Leaving the quiz.[/]")
        return "quit"
    elif command.type == "help":
        console.print(_help_text(player))
    else:
        assert_never(command.type)
    return None


def _apply_answer(
    command: SessionCommand, player: QuizPlayer, console: Console
) -> None:
    value = command.value or ""
    if player.state is PlayerState.FEED:
        if command.target is None:
            raise QuizStateError(
                "Prefix feed answers with the question number, e.g. '2: B'."
            )
        index = command.target - 1
        if not 0 <= index < len(player.quiz.questions):
            raise QuizStateError(f"There is no question {command.target}.")
        question = player.quiz.questions[index]
    elif player.state is PlayerState.QUESTION:
        current = player.current_question
        assert current is not None
        question = current
    else:
        raise QuizStateError(
            f"Answers cannot change in the '{player.state.value}' state."
        )

    if isinstance(question, (SingleChoiceQuestion, MediaQuestion)):
        letter = value.strip()
        option = question.option_index(letter) if len(letter) == 1 else None
        if option is None:
            raise QuizStateError(f"'{value}' is not a valid choice.")
        player.submit_answer(question.id, option)
    elif isinstance(question, MultipleChoiceQuestion):
        indices: list[int] = []
        for letter in filter(None, _LETTER_SPLIT.split(value)):
            option = (
                question.option_index(letter) if len(letter) == 1 else None
            )
            if option is None:
                raise QuizStateError(f"'{letter}' is not a valid choice.")
            if option not in indices:
                indices.append(option)
        player.submit_answer(question.id, indices)
    elif isinstance(question, (ShortAnswerQuestion, LongTextQuestion)):
        player.submit_answer(question.id, value)
    elif isinstance(question, (FillBlankQuestion, TextCompletionQuestion)):
        count = question.gap_count()
        values = [part.strip() for part in value.split("|")][:count]
        values.extend([""] * (count - len(values)))
        player.submit_answer(question.id, values)
    else:
        assert_never(question)
    console.print("[dim]Answer saved.[/]")


def _render(console: Console, player: QuizPlayer, role: str | None) -> None:
    state = player.state
    if state is PlayerState.TITLE:
        _render_title(console, player)
    elif state is PlayerState.QUESTION or state is PlayerState.RESULT:
        _render_current(console, player)
    elif state is PlayerState.FEED:
        _render_feed(console, player)
    elif state is PlayerState.COMPLETED:
        _render_completed(console, player, role)
    else:
        assert_never(state)


def _render_title(console: Console, player: QuizPlayer) -> None:
    quiz = player.quiz
    lines = [f"{total_item_count(quiz)} question(s)"]
    if quiz.time_limit_minutes:
        lines.append(f"Time limit: {quiz.time_limit_minutes} min")
    console.print()
    console.print(
        Panel(
            "\n".join(lines) + "\n\nType /start to begin.",
            title=quiz.title or "Quiz",
            border_style="cyan",
        )
    )
    _render_media(console, player)


def _render_media(console: Console, player: QuizPlayer) -> None:
    media = player.quiz.media
    if media is not None:
        console.print(
            Text(f"Media ({media.kind.value}): {media.url}", style="magenta")
        )


def _render_current(console: Console, player: QuizPlayer) -> None:
    question = player.current_question
    assert question is not None
    quiz = player.quiz
    console.print()
    console.rule(
        Text.assemble(
            (display_label(quiz, player.cursor), "bold cyan"),
            (f"  {progress_percentage(quiz, player.cursor):.0f}%", "dim"),
        )
    )
    remaining = player.remaining_seconds()
    if remaining is not None:
        console.print(Text(f"Time left: {int(remaining) // 60} min", "dim"))
    _render_question_body(console, question, player, reveal=False)

    if player.state is PlayerState.RESULT:
        _render_feedback(console, question, player)
        hint = "see results" if player.is_last_question else "continue"
        console.print(Text(f"Type /next to {hint}. /quit to leave.", "dim"))
    else:
        console.print(
            Text("Type your answer, then /check. /quit to leave.", "dim")
        )


def _render_feed(console: Console, player: QuizPlayer) -> None:
    quiz = player.quiz
    console.print()
    title = quiz.title or "Quiz"
    if player.read_only:
        title += " (review)"
    console.rule(Text(title, style="bold cyan"))
    _render_media(console, player)
    for index, question in enumerate(quiz.questions):
        console.print(
            Text(f"{index + 1}. {display_label(quiz, index)}", "bold")
        )
        _render_question_body(
            console, question, player, reveal=player.read_only
        )
    answered = sum(
        1 for q in quiz.questions if scoring.is_answered(q, player.answers)
    )
    if player.read_only:
        hint = "Commands: /back, /retry, /quit"
    else:
        hint = "Answer with 'N: answer'. Commands: /finish, /quit"
    console.print(
        Text(f"Answered {answered}/{len(quiz.questions)} | {hint}", "dim")
    )


def _render_question_body(
    console: Console,
    question: Question,
    player: QuizPlayer,
    *,
    reveal: bool,
) -> None:
    if question.prompt_text:
        console.print(Text(mask_gaps(question.prompt_text, _gap_label)))
    if question.content_text:
        console.print(
            Panel(
                Text(mask_gaps(question.content_text, _gap_label)),
                box=box.SIMPLE,
            )
        )

    answers = player.answers
    if isinstance(
        question,
        (SingleChoiceQuestion, MediaQuestion, MultipleChoiceQuestion),
    ):
        if isinstance(question, MediaQuestion) and question.media_url:
            console.print(
                Text(
                    f"Media ({question.media_type or 'file'}): "
                    f"{question.media_url}",
                    style="magenta",
                )
            )
        selected = answers.selection(question.id)
        chosen = set(selected) if isinstance(selected, list) else {selected}
        table = Table(show_header=False, box=box.SIMPLE, expand=True)
        table.add_column("Key", justify="center", style="cyan")
        table.add_column("Choice")
        for index, option in enumerate(question.options):
            marker = "•" if index in chosen else " "
            text = Text(f"{marker} {option.text}")
            if index in chosen:
                text.stylize("bold green")
            table.add_row(option.letter, text)
        console.print(table)
    elif isinstance(question, (FillBlankQuestion, TextCompletionQuestion)):
        values = answers.gap_values(question.id)
        filled = " | ".join(value or "…" for value in values)
        console.print(Text(f"Your gaps: {filled}", style="green"))
    elif isinstance(question, (ShortAnswerQuestion, LongTextQuestion)):
        selected = answers.selection(question.id)
        if isinstance(selected, str) and selected:
            console.print(Text(f"Your answer: {selected}", style="green"))
    else:
        assert_never(question)

    if reveal:
        _render_feedback(console, question, player)


def _render_feedback(
    console: Console, question: Question, player: QuizPlayer
) -> None:
    correct = scoring.is_correct(question, player.answers)
    body = Text()
    body.append(
        "Correct" if correct else "Incorrect",
        style="bold green" if correct else "bold red",
    )
    body.append(f"\nExpected: {_expected_text(question)}")
    if question.explanation:
        body.append(f"\n{question.explanation}")
    console.print(
        Panel(body, border_style="green" if correct else "red", expand=True)
    )


def _expected_text(question: Question) -> str:
    if isinstance(question, (SingleChoiceQuestion, MediaQuestion)):
        index = question.correct_answer
        if index is None or not 0 <= index < len(question.options):
            return "n/a"
        option = question.options[index]
        return f"{option.letter}) {option.text}"
    if isinstance(question, MultipleChoiceQuestion):
        letters = [
            question.options[index].letter
            for index in sorted(question.correct_answer)
            if 0 <= index < len(question.options)
        ]
        return ", ".join(letters) or "n/a"
    if isinstance(question, ShortAnswerQuestion):
        return question.correct_answer or "n/a"
    if isinstance(question, (FillBlankQuestion, TextCompletionQuestion)):
        return " | ".join(question.expected_answers()) or "n/a"
    if isinstance(question, LongTextQuestion):
        return "any non-empty answer"
    assert_never(question)


def _render_completed(
    console: Console, player: QuizPlayer, role: str | None
) -> None:
    outcome = player.outcome
    console.print()
    console.rule(Text("Quiz Summary", style="bold magenta"))
    if outcome is None:
        return
    overview = Table(show_header=False, box=box.MINIMAL_DOUBLE_HEAD)
    overview.add_column("Metric", style="bold")
    overview.add_column("Value", justify="right")
    overview.add_row("Score", f"{outcome.display_percentage}%")
    overview.add_row(
        "Correct", f"{outcome.correct_items}/{outcome.total_items}"
    )
    overview.add_row("Result", "Passed" if outcome.passed else "Failed")
    console.print(overview)
    if outcome.restored:
        console.print(Text("Showing your previous attempt.", style="dim"))

    results = Table(title="Questions", box=box.SIMPLE, expand=True)
    results.add_column("#", justify="right")
    results.add_column("Question", overflow="fold")
    results.add_column("Score", justify="right")
    for index, item in enumerate(
        scoring.question_results(player.quiz, player.answers), start=1
    ):
        prompt = item.question.prompt_text or f"Question {index}"
        results.add_row(
            str(index),
            mask_gaps(prompt, _gap_label),
            f"{item.correct_units}/{item.total_units}",
        )
    console.print(results)

    hints = ["/retry"]
    if player.all_at_once and player.allow_review:
        hints.append("/review")
    if player.can_proceed(role):
        hints.append("/continue")
    hints.append("/quit")
    console.print(Text("Commands: " + ", ".join(hints), style="dim"))


def _help_text(player: QuizPlayer) -> str:
    lines = [
        "Answers: a letter (A) for single choice, letters (A,C) for "
        "multiple choice, 'word1 | word2' for gaps, free text otherwise.",
        "Commands: /start /check /next /finish /retry /review /back "
        "/continue /quit",
    ]
    if player.all_at_once:
        lines.append("In the feed, prefix answers with the question number.")
    return "\n".join(lines)


def _gap_label(number: int) -> str:
    return f"({number}) ____"
