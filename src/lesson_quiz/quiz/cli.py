"""Command-line entry points for playing and authoring lesson quizzes."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Sequence

from rich.console import Console

from lesson_quiz.core import config_templates
from lesson_quiz.core import workspace as workspace_mod
from lesson_quiz.core.config_templates import ConfigTemplateError
from lesson_quiz.core.logging import configure_logger

from .attempts import (
    AttemptDecodeError,
    AttemptRecorder,
    QuizAttempt,
    StepContext,
)
from .bulk import parse_bulk_questions
from .config import (
    CONFIG_FILENAME,
    ConfigOverrides,
    LoadResult,
    QuizConfigError,
    StorageBackend,
    UserRole,
    build_store,
    load_config,
)
from .loader import StepTracker, load_player, quiz_from_step_content
from .models import Quiz, QuizContentError, quiz_to_dict
from .session import run_quiz_session
from .stores import AttemptStore, AttemptStoreError, HttpAttemptStore
from .summary import summarize_lesson_attempts
from .validation import validate_quiz


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lesson-quiz quiz",
        description="Play, validate and import lesson quizzes.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    play_parser = subparsers.add_parser(
        "play",
        help="Play a quiz in the terminal and record the attempt.",
    )
    play_parser.add_argument(
        "quiz", type=Path, help="Quiz JSON file (a step's content field)."
    )
    _add_step_arguments(play_parser)
    play_parser.add_argument(
        "--course-id",
        type=_step_id,
        help="Course the step belongs to (stored with the attempt).",
    )
    play_parser.add_argument(
        "--lesson-id",
        type=_step_id,
        help="Lesson the step belongs to (stored with the attempt).",
    )
    play_parser.add_argument(
        "--role",
        choices=[role.value for role in UserRole],
        help="Viewer role; teachers, curators and admins skip the gate.",
    )
    _add_config_arguments(play_parser)

    validate_parser = subparsers.add_parser(
        "validate",
        help="Report authoring errors and warnings for a quiz file.",
    )
    validate_parser.add_argument("quiz", type=Path)
    validate_parser.add_argument(
        "--quiet",
        action="store_true",
        help="Only print questions with errors or warnings.",
    )

    import_parser = subparsers.add_parser(
        "import-bulk",
        help="Convert numbered plain-text questions into quiz JSON.",
    )
    import_parser.add_argument("source", type=Path)
    import_parser.add_argument(
        "--title", default="", help="Title for the generated quiz."
    )
    import_parser.add_argument(
        "--output",
        type=Path,
        help="Write the quiz JSON here instead of stdout.",
    )
    import_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite the output file if it already exists.",
    )

    attempts_parser = subparsers.add_parser(
        "attempts",
        help="List stored attempts for a lesson step, newest first.",
    )
    _add_step_arguments(attempts_parser)
    _add_config_arguments(attempts_parser)

    summary_parser = subparsers.add_parser(
        "summary",
        help="Summarize the latest attempt of several lesson steps.",
    )
    summary_parser.add_argument(
        "--step-id",
        dest="step_ids",
        type=_step_id,
        action="append",
        required=True,
        help="Lesson step to include (repeat for each quiz step).",
    )
    _add_config_arguments(summary_parser)

    config_parser = subparsers.add_parser(
        "config",
        help="Manage the quiz configuration file.",
    )
    config_sub = config_parser.add_subparsers(
        dest="config_command", required=True
    )
    init_parser = config_sub.add_parser(
        "init",
        help="Write the default lesson_quiz.toml template.",
    )
    init_parser.add_argument(
        "--path",
        type=Path,
        help=(
            "Destination for the config TOML (defaults to the workspace "
            "config directory)."
        ),
    )
    init_parser.add_argument(
        "--workspace",
        type=Path,
        help="Override the workspace root used to resolve the default path.",
    )
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing config file if present.",
    )
    return parser


def _add_step_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--step-id",
        type=_step_id,
        required=True,
        help="Lesson step the quiz belongs to.",
    )


def _add_config_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        help=(
            "Path to a TOML config file (defaults to the workspace config "
            "directory)."
        ),
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        help=(
            "Override the workspace root (defaults to LESSON_QUIZ_DATA_HOME)."
        ),
    )
    parser.add_argument(
        "--backend",
        choices=[backend.value for backend in StorageBackend],
        help="Attempt store to use (file or http).",
    )
    parser.add_argument(
        "--log-level",
        help="Set the logging level for the run (defaults to INFO).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=None,
        help="Log at DEBUG level and mirror log records to stderr.",
    )


def _step_id(value: str) -> int | str:
    value = value.strip()
    if not value:
        raise argparse.ArgumentTypeError("Identifiers cannot be empty.")
    return int(value) if value.isdigit() else value


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    handlers = {
        "play": _handle_play,
        "validate": _handle_validate,
        "import-bulk": _handle_import_bulk,
        "attempts": _handle_attempts,
        "summary": _handle_summary,
        "config": _handle_config,
    }
    return handlers[args.command](args)


def _handle_play(args: argparse.Namespace) -> int:
    try:
        quiz = _read_quiz(args.quiz)
    except (OSError, QuizContentError) as exc:
        _print_error(str(exc))
        return 1

    try:
        loaded = _load(args)
    except (QuizConfigError, workspace_mod.WorkspaceError) as exc:
        _print_error(str(exc))
        return 2
    config = loaded.config
    logger, log_path = configure_logger(
        "lesson_quiz.quiz",
        log_dir=loaded.layout.path_for("logs"),
        level=config.log_level,
        verbose=config.verbose,
    )
    try:
        store = build_store(config, logger=logger)
    except AttemptStoreError as exc:
        _print_error(str(exc))
        return 2

    step = StepContext(args.step_id, args.course_id, args.lesson_id)
    tracker = StepTracker()
    ticket = tracker.activate(step.step_id)
    console = Console()
    try:
        player = load_player(
            quiz,
            store,
            step,
            ticket,
            recorder=AttemptRecorder(store, step, logger=logger),
            allow_review=config.allow_review,
            logger=logger,
        )
        if player is None:
            _print_error("The lesson step changed while loading the quiz.")
            return 1
        result = run_quiz_session(
            player,
            console,
            lambda: console.input("[bold cyan]> [/]"),
            role=config.role.value,
        )
    finally:
        tracker.deactivate()
        _close_store(store)

    if result.outcome is not None:
        console.print(
            f"Score: {result.outcome.display_percentage}% "
            f"({result.outcome.correct_items}/{result.outcome.total_items})"
        )
    console.print(f"[dim]Log file: {log_path}[/]")
    return 0


def _handle_validate(args: argparse.Namespace) -> int:
    try:
        quiz = _read_quiz(args.quiz)
    except (OSError, QuizContentError) as exc:
        _print_error(str(exc))
        return 1

    report = validate_quiz(quiz)
    lines: list[str] = []
    for index, (question, result) in enumerate(report.results, start=1):
        if args.quiet and not (result.errors or result.warnings):
            continue
        status = "ok" if result.is_valid else "invalid"
        lines.append(
            f"{index}. {question.id} [{question.kind.value}] {status}"
        )
        lines.extend(f"   error: {message}" for message in result.errors)
        lines.extend(
            f"   warning: {message}" for message in result.warnings
        )
    lines.append(
        f"{len(report.results)} question(s), {report.error_count} "
        f"error(s), {report.warning_count} warning(s)"
    )
    sys.stdout.write("\n".join(lines) + "\n")
    return 0 if report.is_valid else 1


def _handle_import_bulk(args: argparse.Namespace) -> int:
    try:
        text = args.source.read_text(encoding="utf-8")
    except OSError as exc:
        _print_error(f"Unable to read {args.source}: {exc}")
        return 1

    result = parse_bulk_questions(text)
    if not result.ok:
        for message in result.errors:
            _print_error(message)
        return 1

    title = args.title or args.source.stem
    document = json.dumps(
        quiz_to_dict(result.to_quiz(title)), indent=2, ensure_ascii=False
    )
    if args.output is None:
        sys.stdout.write(document + "\n")
        return 0

    target = args.output.expanduser()
    if target.exists() and not args.force:
        _print_error(
            f"{target} already exists. Use --force to overwrite it."
        )
        return 2
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(document + "\n", encoding="utf-8")
    except OSError as exc:
        _print_error(f"Unable to write {target}: {exc}")
        return 1
    sys.stdout.write(
        f"Imported {len(result.questions)} question(s) to {target}\n"
    )
    return 0


def _handle_attempts(args: argparse.Namespace) -> int:
    try:
        loaded = _load(args)
        store = build_store(loaded.config)
    except (
        QuizConfigError,
        workspace_mod.WorkspaceError,
        AttemptStoreError,
    ) as exc:
        _print_error(str(exc))
        return 2

    try:
        records = store.list_for_step(args.step_id)
    except AttemptStoreError as exc:
        _print_error(str(exc))
        return 1
    finally:
        _close_store(store)

    if not records:
        sys.stdout.write(f"No attempts stored for step {args.step_id}.\n")
        return 0

    lines = [f"Attempts for step {args.step_id} (newest first):"]
    for record in records:
        try:
            attempt = QuizAttempt.from_dict(record)
        except AttemptDecodeError as exc:
            lines.append(f"  <unreadable attempt: {exc}>")
            continue
        verdict = "passed" if attempt.passed else "failed"
        lines.append(
            f"  {attempt.completed_at or '-'}  "
            f"{attempt.score_percentage:.0f}%  "
            f"{attempt.correct_answers}/{attempt.total_questions}  "
            f"{verdict}  {attempt.time_spent_seconds}s"
        )
    sys.stdout.write("\n".join(lines) + "\n")
    return 0


def _handle_summary(args: argparse.Namespace) -> int:
    try:
        loaded = _load(args)
        store = build_store(loaded.config)
    except (
        QuizConfigError,
        workspace_mod.WorkspaceError,
        AttemptStoreError,
    ) as exc:
        _print_error(str(exc))
        return 2

    try:
        summary = summarize_lesson_attempts(store, args.step_ids)
    finally:
        _close_store(store)

    lines = ["Lesson quiz summary:"]
    for item in summary.items:
        lines.append(
            f"  step {item.step_id}: {item.quiz_title or '(untitled)'}  "
            f"{item.score_percentage:.0f}%  "
            f"{item.correct_answers}/{item.total_questions}"
        )
    lines.extend(
        [
            f"  quizzes taken:   {len(summary.items)}",
            f"  quizzes passed:  {summary.passed_count}",
            f"  correct answers: {summary.correct_answers}/"
            f"{summary.total_questions}",
            f"  average score:   {summary.average_percentage:.0f}%",
        ]
    )
    sys.stdout.write("\n".join(lines) + "\n")
    return 0


def _handle_config(args: argparse.Namespace) -> int:
    command = args.config_command
    if command == "init":
        return _handle_config_init(args)
    raise RuntimeError(f"Unhandled config command: {command}")


def _handle_config_init(args: argparse.Namespace) -> int:
    try:
        target = _resolve_config_target(args)
    except workspace_mod.WorkspaceError as exc:
        _print_error(str(exc))
        return 1

    template = config_templates.get_template("quiz")
    try:
        written = template.write(target, overwrite=args.force)
    except ConfigTemplateError as exc:
        _print_error(str(exc))
        return 1

    sys.stdout.write(f"Wrote quiz config to {written}\n")
    return 0


def _resolve_config_target(args: argparse.Namespace) -> Path:
    if args.path is not None:
        candidate = args.path.expanduser()
        if not candidate.is_absolute():
            candidate = (Path.cwd() / candidate).resolve()
        return candidate

    layout = workspace_mod.ensure_workspace(path=args.workspace)
    return layout.path_for("config") / CONFIG_FILENAME


def _load(args: argparse.Namespace) -> LoadResult:
    overrides = ConfigOverrides(
        storage_backend=(
            StorageBackend.from_value(args.backend) if args.backend else None
        ),
        role=(
            UserRole.from_value(args.role)
            if getattr(args, "role", None)
            else None
        ),
        log_level=args.log_level,
        verbose=args.verbose,
    )
    return load_config(
        config_path=args.config,
        overrides=overrides,
        workspace_path=args.workspace,
    )


def _read_quiz(path: Path) -> Quiz:
    return quiz_from_step_content(path.read_text(encoding="utf-8"))


def _close_store(store: AttemptStore) -> None:
    if isinstance(store, HttpAttemptStore):
        store.close()


def _print_error(message: str) -> None:
    sys.stderr.write(message + "\n")


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
