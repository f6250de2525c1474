"""``lesson-quiz`` entry point dispatching to the per-feature CLIs."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from importlib import import_module, metadata
from typing import Callable, Mapping, Optional, Sequence

PROG = "lesson-quiz"
DISTRIBUTION = "lesson-quiz"


@dataclass(frozen=True)
class CommandSpec:
    """A subcommand served by ``main(argv)`` of ``module``."""

    name: str
    summary: str
    module: str
    interactive: bool = False

    def run(self, argv: Sequence[str]) -> int:
        return _run_module_command(self.module, argv)


COMMANDS: Mapping[str, CommandSpec] = {
    spec.name: spec
    for spec in (
        CommandSpec(
            name="init",
            summary="Bootstrap the lesson-quiz workspace.",
            module="lesson_quiz.workspace.cli",
        ),
        CommandSpec(
            name="quiz",
            summary="Play, validate and import lesson quizzes.",
            module="lesson_quiz.quiz.cli",
            interactive=True,
        ),
        CommandSpec(
            name="flashcards",
            summary="Study or import flashcard sets.",
            module="lesson_quiz.flashcards.cli",
            interactive=True,
        ),
    )
}


def format_command_table() -> str:
    """Return the command listing shared by usage and ``list``."""

    width = max(len(name) for name in COMMANDS)
    rows = ["Available commands:"]
    for spec in COMMANDS.values():
        suffix = " (interactive)" if spec.interactive else ""
        rows.append(f"  {spec.name:<{width}}  {spec.summary}{suffix}")
    return "\n".join(rows)


def format_usage() -> str:
    return "\n".join(
        (
            f"Usage: {PROG} <command> [args...]",
            f"Run `{PROG} list` for commands or `{PROG} help <name>` "
            "for details.",
            "",
            format_command_table(),
        )
    )


Writer = Callable[[str], object]


def _emit(text: str, write: Optional[Writer] = None) -> None:
    (write or sys.stdout.write)(text + "\n")


def _report_unknown(name: str) -> int:
    _emit(f"Unknown command '{name}'.", sys.stderr.write)
    _emit(format_command_table(), sys.stderr.write)
    return 2


def _show_version() -> int:
    try:
        _emit(metadata.version(DISTRIBUTION))
    except metadata.PackageNotFoundError:
        _emit("unknown")
    return 0


def _show_help(topic: Sequence[str]) -> int:
    if not topic:
        _emit(format_usage())
        return 0
    spec = COMMANDS.get(topic[0])
    if spec is None:
        return _report_unknown(topic[0])
    _emit(f"{spec.name}: {spec.summary}")
    _emit(f"Run `{PROG} {spec.name} --help` for command options.")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        _emit(format_usage())
        return 2

    head, *rest = args
    if head in ("-h", "--help"):
        _emit(format_usage())
        return 0
    if head in ("-V", "--version", "version"):
        return _show_version()
    if head == "list":
        _emit(format_command_table())
        return 0
    if head == "help":
        return _show_help(rest)

    spec = COMMANDS.get(head)
    if spec is None:
        return _report_unknown(head)
    return spec.run(rest)


def _run_module_command(module_name: str, argv: Sequence[str]) -> int:
    entry = getattr(import_module(module_name), "main")
    try:
        result = entry(list(argv))
    except SystemExit as exc:
        return _exit_code(exc)
    return result if isinstance(result, int) else 0


def _exit_code(exc: SystemExit) -> int:
    # argparse exits with ints; a string code is a message for stderr
    if exc.code is None or isinstance(exc.code, int):
        return exc.code or 0
    _emit(str(exc.code), sys.stderr.write)
    return 1


if __name__ == "__main__":  # pragma: no cover - manual invocation guard
    raise SystemExit(main())
