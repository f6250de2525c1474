"""Configuration loader for quiz sessions."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional

from lesson_quiz.core import config as core_config
from lesson_quiz.core import workspace as workspace_mod

from .stores import AttemptStore, FileAttemptStore, HttpAttemptStore

CONFIG_FILENAME = "lesson_quiz.toml"
CONFIG_ENV = "LESSON_QUIZ_CONFIG"
ENV_PREFIX = "LESSON_QUIZ_"

_DEFAULT_TIMEOUT = 10.0
_DEFAULT_LOG_LEVEL = "INFO"


class QuizConfigError(RuntimeError):
    """Raised when configuration parsing or validation fails."""


class StorageBackend(Enum):
    FILE = "file"
    HTTP = "http"

    @classmethod
    def from_value(cls, value: str) -> "StorageBackend":
        normalized = value.strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        expected = ", ".join(member.value for member in cls)
        raise QuizConfigError(
            f"Unknown storage backend '{value}'. Expected one of: {expected}."
        )


class UserRole(Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    CURATOR = "curator"
    ADMIN = "admin"

    @classmethod
    def from_value(cls, value: str) -> "UserRole":
        normalized = value.strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        expected = ", ".join(member.value for member in cls)
        raise QuizConfigError(
            f"Unknown role '{value}'. Expected one of: {expected}."
        )


_DEFAULT_TABLE: Mapping[str, Mapping[str, object]] = {
    "storage": {"backend": StorageBackend.FILE.value, "attempts_dir": ""},
    "api": {"base_url": "", "timeout_seconds": _DEFAULT_TIMEOUT},
    "player": {"allow_review": True, "role": UserRole.STUDENT.value},
    "logging": {"level": _DEFAULT_LOG_LEVEL, "verbose": False},
}


@dataclass(frozen=True)
class QuizConfig:
    storage_backend: StorageBackend
    attempts_dir: Path
    api_base_url: Optional[str]
    api_timeout_seconds: float
    allow_review: bool
    role: UserRole
    log_level: str
    verbose: bool


@dataclass(frozen=True)
class ConfigOverrides:
    """Values supplied on the command line."""

    storage_backend: Optional[StorageBackend] = None
    attempts_dir: Optional[Path] = None
    api_base_url: Optional[str] = None
    role: Optional[UserRole] = None
    log_level: Optional[str] = None
    verbose: Optional[bool] = None


@dataclass(frozen=True)
class LoadResult:
    config: QuizConfig
    layout: workspace_mod.WorkspaceLayout
    config_path: Optional[Path]


def load_config(
    *,
    config_path: Optional[Path] = None,
    overrides: Optional[ConfigOverrides] = None,
    env: Optional[Mapping[str, str]] = None,
    workspace_path: Optional[Path] = None,
) -> LoadResult:
    """Resolve configuration with precedence CLI > env > TOML > defaults."""

    overrides = overrides or ConfigOverrides()
    env_map = os.environ if env is None else env

    layout = workspace_mod.ensure_workspace(env=env_map, path=workspace_path)
    requested = _resolve_config_path(
        config_path=config_path,
        env_map=env_map,
        default_path=layout.path_for("config") / CONFIG_FILENAME,
    )

    loaded_path: Optional[Path] = None
    if requested.exists():
        loaded_path = requested
    elif config_path is not None or _parse_env_string(env_map, "CONFIG"):
        raise QuizConfigError(f"Config file not found: {requested}")
    try:
        table = core_config.load_layered(_DEFAULT_TABLE, loaded_path)
    except core_config.TomlConfigError as exc:
        raise QuizConfigError(str(exc)) from exc

    storage = table["storage"]
    api = table["api"]
    player = table["player"]
    logging_table = table["logging"]

    backend_raw = _pick_first(
        overrides.storage_backend,
        _parse_env_string(env_map, "STORAGE_BACKEND"),
        storage["backend"],
    )
    backend = (
        backend_raw
        if isinstance(backend_raw, StorageBackend)
        else StorageBackend.from_value(_require_str(backend_raw, "backend"))
    )

    attempts_dir = _resolve_attempts_dir(
        _pick_first(
            overrides.attempts_dir,
            _parse_env_path(env_map, "ATTEMPTS_DIR"),
            _coerce_optional_path(storage["attempts_dir"]),
        ),
        layout=layout,
    )

    base_url = _pick_first(
        overrides.api_base_url,
        _parse_env_string(env_map, "API_URL"),
        api["base_url"] or None,
    )

    role_raw = _pick_first(
        overrides.role,
        _parse_env_string(env_map, "ROLE"),
        player["role"],
    )
    role = (
        role_raw
        if isinstance(role_raw, UserRole)
        else UserRole.from_value(_require_str(role_raw, "player.role"))
    )

    log_level = _require_str(
        _pick_first(
            overrides.log_level,
            _parse_env_string(env_map, "LOG_LEVEL"),
            logging_table["level"],
        ),
        "logging.level",
    ).upper()

    config = QuizConfig(
        storage_backend=backend,
        attempts_dir=attempts_dir,
        api_base_url=str(base_url) if base_url else None,
        api_timeout_seconds=_coerce_timeout(api["timeout_seconds"]),
        allow_review=_require_bool(player["allow_review"], "allow_review"),
        role=role,
        log_level=log_level,
        verbose=bool(
            _pick_first(overrides.verbose, logging_table["verbose"])
        ),
    )
    return LoadResult(config=config, layout=layout, config_path=loaded_path)


def build_store(
    config: QuizConfig, *, logger: Optional[logging.Logger] = None
) -> AttemptStore:
    """Instantiate the attempt store selected by ``config``."""

    if config.storage_backend is StorageBackend.HTTP:
        return HttpAttemptStore.from_env(
            base_url=config.api_base_url,
            timeout_seconds=config.api_timeout_seconds,
        )
    return FileAttemptStore(config.attempts_dir, logger=logger)


def _resolve_config_path(
    *,
    config_path: Optional[Path],
    env_map: Mapping[str, str],
    default_path: Path,
) -> Path:
    if config_path is not None:
        return config_path.expanduser()
    env_candidate = env_map.get(CONFIG_ENV)
    if env_candidate and env_candidate.strip():
        return Path(env_candidate.strip()).expanduser()
    return default_path


def _resolve_attempts_dir(
    candidate: object, *, layout: workspace_mod.WorkspaceLayout
) -> Path:
    if candidate is None:
        return layout.path_for("attempts")
    path = Path(str(candidate)).expanduser()
    if not path.is_absolute():
        path = layout.home / path
    return path.resolve()


def _coerce_optional_path(value: object) -> Optional[Path]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise QuizConfigError("storage.attempts_dir must be a string.")
    return Path(value.strip()) if value.strip() else None


def _coerce_timeout(value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise QuizConfigError("api.timeout_seconds must be a number.")
    if value <= 0:
        raise QuizConfigError("api.timeout_seconds must be positive.")
    return float(value)


def _require_str(value: object, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise QuizConfigError(f"{name} must be a non-empty string.")
    return value.strip()


def _require_bool(value: object, name: str) -> bool:
    if not isinstance(value, bool):
        raise QuizConfigError(f"player.{name} must be true or false.")
    return value


def _parse_env_path(env_map: Mapping[str, str], key: str) -> Optional[Path]:
    raw = _parse_env_string(env_map, key)
    return Path(raw).expanduser() if raw is not None else None


def _parse_env_string(env_map: Mapping[str, str], key: str) -> Optional[str]:
    raw = env_map.get(f"{ENV_PREFIX}{key}")
    if raw is None:
        return None
    value = raw.strip()
    return value or None


def _pick_first(*candidates: object) -> object:
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None
