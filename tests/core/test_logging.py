from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path

from lesson_quiz.core import logging as core_logging


def _close_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def _console_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [
        handler
        for handler in logger.handlers
        if getattr(handler, "_lesson_quiz_console", False)
    ]


def test_configure_logger_writes_json(tmp_path):
    log_dir = tmp_path / "logs"
    logger, log_path = core_logging.configure_logger(
        "lesson_quiz.test",
        log_dir=log_dir,
        level="INFO",
        filename="test.log",
    )

    logger.info(
        "Quiz attempt saved", extra={"step_id": 7, "score_percentage": 75.0}
    )
    logger.debug("hidden at INFO")

    class _Helper:
        def __repr__(self):  # noqa: D401
            return "helper"

    try:
        raise ValueError("boom")
    except ValueError:
        logger.exception(
            "with error",
            extra={"items": [Path(log_dir), 1], "obj": _Helper()},
        )
    for handler in logger.handlers:
        handler.flush()

    lines = log_path.read_text(encoding="utf-8").strip().splitlines()
    assert len(lines) == 2
    first = json.loads(lines[0])
    assert first["message"] == "Quiz attempt saved"
    assert first["level"] == "INFO"
    assert first["extra"] == {"step_id": 7, "score_percentage": 75.0}

    last = json.loads(lines[-1])
    assert "ValueError: boom" in last["exception"]
    assert last["extra"]["obj"] == "helper"
    assert last["extra"]["items"] == [str(log_dir), 1]

    _close_handlers(logger)


def test_configure_logger_reuses_file_handler(tmp_path):
    log_dir = tmp_path / "logs"
    logger, _ = core_logging.configure_logger(
        "lesson_quiz.test_reuse", log_dir=log_dir
    )
    core_logging.configure_logger("lesson_quiz.test_reuse", log_dir=log_dir)

    file_handlers = [
        handler
        for handler in logger.handlers
        if getattr(handler, "_lesson_quiz_file", False)
    ]
    assert len(file_handlers) == 1
    assert logger.propagate is False

    _close_handlers(logger)


def test_default_filename_uses_last_logger_segment(tmp_path):
    logger, log_path = core_logging.configure_logger(
        "lesson_quiz.sample", log_dir=tmp_path / "logs"
    )

    assert log_path.name == "sample.log"

    _close_handlers(logger)


def test_console_handler_toggle(tmp_path):
    log_dir = tmp_path / "logs"
    name = "lesson_quiz.test_toggle"

    logger, _ = core_logging.configure_logger(
        name, log_dir=log_dir, verbose=True, filename="toggle.log"
    )
    assert len(_console_handlers(logger)) == 1

    core_logging.configure_logger(
        name, log_dir=log_dir, verbose=True, filename="toggle.log"
    )
    assert len(_console_handlers(logger)) == 1

    core_logging.configure_logger(
        name, log_dir=log_dir, verbose=False, filename="toggle.log"
    )
    assert not _console_handlers(logger)

    _close_handlers(logger)


def test_configure_logger_fallback_directory(tmp_path, monkeypatch):
    target = tmp_path / "blocked"
    fallback = tmp_path / "fallback"
    monkeypatch.setattr(core_logging, "_fallback_log_dir", lambda: fallback)
    original_mkdir = Path.mkdir

    def fake_mkdir(self, *args, **kwargs):  # noqa: ANN001
        if self == target:
            raise PermissionError("denied")
        return original_mkdir(self, *args, **kwargs)

    monkeypatch.setattr(Path, "mkdir", fake_mkdir)

    logger, log_path = core_logging.configure_logger(
        "lesson_quiz.test_blocked", log_dir=target, filename="blocked.log"
    )

    assert log_path.parent == fallback
    assert log_path.exists()

    _close_handlers(logger)


def test_configure_logger_rotating_handler_fallback(tmp_path, monkeypatch):
    calls = {"count": 0}
    fallback_dir = tmp_path / "rotate-fallback"
    original_handler = core_logging.RotatingFileHandler

    def fake_handler(path, *args, **kwargs):  # noqa: ANN001
        calls["count"] += 1
        if calls["count"] == 1:
            raise PermissionError("denied")
        return original_handler(path, *args, **kwargs)

    monkeypatch.setattr(core_logging, "RotatingFileHandler", fake_handler)
    monkeypatch.setattr(
        core_logging, "_fallback_log_dir", lambda: fallback_dir
    )

    logger, log_path = core_logging.configure_logger(
        "lesson_quiz.test_rotating_fallback",
        log_dir=tmp_path / "primary",
        filename="rotate.log",
    )

    assert log_path.parent == fallback_dir
    assert calls["count"] == 2

    _close_handlers(logger)


def test_fallback_log_dir_uses_tempdir(tmp_path, monkeypatch):
    monkeypatch.setattr(tempfile, "gettempdir", lambda: str(tmp_path))

    assert core_logging._fallback_log_dir() == tmp_path / "lesson-quiz-logs"


def test_coerce_level_defaults():
    assert core_logging._coerce_level("bogus") == logging.INFO
    assert core_logging._coerce_level(" warning ") == logging.WARNING
