from __future__ import annotations

from pathlib import Path

import pytest

from lesson_quiz.quiz import config as quiz_config
from lesson_quiz.quiz.config import (
    ConfigOverrides,
    QuizConfigError,
    StorageBackend,
    UserRole,
)
from lesson_quiz.quiz.stores import FileAttemptStore, HttpAttemptStore


def _write_config(path: Path, body: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body, encoding="utf-8")
    return path


def test_defaults_use_workspace_attempts_dir(tmp_path):
    result = quiz_config.load_config(
        env={}, workspace_path=tmp_path / "ws"
    )

    config = result.config
    assert result.config_path is None
    assert config.storage_backend is StorageBackend.FILE
    assert config.attempts_dir == (tmp_path / "ws").resolve() / "attempts"
    assert config.api_base_url is None
    assert config.api_timeout_seconds == 10.0
    assert config.allow_review is True
    assert config.role is UserRole.STUDENT
    assert config.log_level == "INFO"
    assert config.verbose is False


def test_workspace_config_file_is_loaded(tmp_path):
    home = tmp_path / "ws"
    _write_config(
        home / "config" / quiz_config.CONFIG_FILENAME,
        '[storage]\nattempts_dir = "mine"\n'
        '[player]\nallow_review = false\nrole = "teacher"\n'
        '[logging]\nlevel = "debug"\nverbose = true\n',
    )

    result = quiz_config.load_config(env={}, workspace_path=home)

    assert result.config_path == (
        home.resolve() / "config" / "lesson_quiz.toml"
    )
    assert result.config.attempts_dir == (home / "mine").resolve()
    assert result.config.allow_review is False
    assert result.config.role is UserRole.TEACHER
    assert result.config.log_level == "DEBUG"
    assert result.config.verbose is True


def test_precedence_cli_over_env_over_file(tmp_path):
    cfg = _write_config(
        tmp_path / "cfg.toml",
        '[storage]\nbackend = "file"\n[player]\nrole = "student"\n'
        '[api]\nbase_url = "https://file.test"\n',
    )
    env = {
        "LESSON_QUIZ_STORAGE_BACKEND": "http",
        "LESSON_QUIZ_ROLE": "curator",
        "LESSON_QUIZ_API_URL": "https://env.test",
        "LESSON_QUIZ_LOG_LEVEL": "warning",
    }

    from_env = quiz_config.load_config(
        config_path=cfg, env=env, workspace_path=tmp_path / "ws"
    ).config
    assert from_env.storage_backend is StorageBackend.HTTP
    assert from_env.role is UserRole.CURATOR
    assert from_env.api_base_url == "https://env.test"
    assert from_env.log_level == "WARNING"

    overrides = ConfigOverrides(
        storage_backend=StorageBackend.FILE,
        role=UserRole.ADMIN,
        api_base_url="https://cli.test",
        log_level="error",
        verbose=True,
    )
    from_cli = quiz_config.load_config(
        config_path=cfg,
        overrides=overrides,
        env=env,
        workspace_path=tmp_path / "ws",
    ).config
    assert from_cli.storage_backend is StorageBackend.FILE
    assert from_cli.role is UserRole.ADMIN
    assert from_cli.api_base_url == "https://cli.test"
    assert from_cli.log_level == "ERROR"
    assert from_cli.verbose is True


def test_config_path_from_env(tmp_path):
    cfg = _write_config(
        tmp_path / "env.toml", '[api]\ntimeout_seconds = 3\n'
    )
    env = {quiz_config.CONFIG_ENV: str(cfg)}

    result = quiz_config.load_config(env=env, workspace_path=tmp_path / "ws")

    assert result.config_path == cfg
    assert result.config.api_timeout_seconds == 3.0


def test_attempts_dir_from_env_and_cli(tmp_path):
    env = {"LESSON_QUIZ_ATTEMPTS_DIR": str(tmp_path / "env-attempts")}

    result = quiz_config.load_config(env=env, workspace_path=tmp_path / "ws")
    assert result.config.attempts_dir == (tmp_path / "env-attempts").resolve()

    result = quiz_config.load_config(
        env=env,
        workspace_path=tmp_path / "ws",
        overrides=ConfigOverrides(attempts_dir=Path("relative")),
    )
    assert result.config.attempts_dir == (
        tmp_path / "ws" / "relative"
    ).resolve()


@pytest.mark.parametrize(
    ("body", "message"),
    [
        ('[storage]\nbackend = "ftp"\n', "Unknown storage backend"),
        ('[player]\nrole = "guest"\n', "Unknown role"),
        ('[player]\nallow_review = "yes"\n', "allow_review"),
        ("[api]\ntimeout_seconds = 0\n", "must be positive"),
        ('[api]\ntimeout_seconds = "fast"\n', "must be a number"),
        ("[storage]\nattempts_dir = 5\n", "attempts_dir"),
        ('[logging]\nlevel = ""\n', "logging.level"),
        ('[storage]\nbucket = "x"\n', "storage.bucket"),
        ("[storage\n", "parse"),
    ],
)
def test_invalid_config_values(tmp_path, body, message):
    cfg = _write_config(tmp_path / "bad.toml", body)

    with pytest.raises(QuizConfigError, match=message):
        quiz_config.load_config(
            config_path=cfg, env={}, workspace_path=tmp_path / "ws"
        )


def test_missing_explicit_config_is_an_error(tmp_path):
    with pytest.raises(QuizConfigError, match="not found"):
        quiz_config.load_config(
            config_path=tmp_path / "absent.toml",
            env={},
            workspace_path=tmp_path / "ws",
        )

    with pytest.raises(QuizConfigError, match="not found"):
        quiz_config.load_config(
            env={quiz_config.CONFIG_ENV: str(tmp_path / "absent.toml")},
            workspace_path=tmp_path / "ws",
        )


def test_enum_parsing():
    assert StorageBackend.from_value(" HTTP ") is StorageBackend.HTTP
    assert UserRole.from_value("Teacher") is UserRole.TEACHER
    with pytest.raises(QuizConfigError):
        StorageBackend.from_value("s3")


def test_build_store_file_backend(tmp_path):
    config = quiz_config.load_config(
        env={}, workspace_path=tmp_path / "ws"
    ).config

    store = quiz_config.build_store(config)

    assert isinstance(store, FileAttemptStore)
    assert store.root == (tmp_path / "ws").resolve() / "attempts"


def test_build_store_http_backend(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    config = quiz_config.load_config(
        env={},
        workspace_path=tmp_path / "ws",
        overrides=ConfigOverrides(
            storage_backend=StorageBackend.HTTP,
            api_base_url="https://api.example.test",
        ),
    ).config

    store = quiz_config.build_store(config)

    assert isinstance(store, HttpAttemptStore)
    assert store.base_url == "https://api.example.test"
    store.close()
