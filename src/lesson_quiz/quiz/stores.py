"""Attempt storage backends: a local JSON directory and the progress API."""

from __future__ import annotations

import hashlib
import json
import logging
import os
import re
import tempfile
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Protocol

import httpx
from dotenv import find_dotenv, load_dotenv

__all__ = [
    "API_TOKEN_ENV",
    "API_URL_ENV",
    "AttemptStore",
    "AttemptStoreError",
    "FileAttemptStore",
    "HttpAttemptStore",
]

API_URL_ENV = "LESSON_QUIZ_API_URL"
API_TOKEN_ENV = "LESSON_QUIZ_API_TOKEN"

_LOGGER = logging.getLogger(__name__)
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")
_SEQUENCE_PREFIX = re.compile(r"^(\d+)-")


class AttemptStoreError(RuntimeError):
    """Raised when attempts cannot be written to or read from a backend."""


class AttemptStore(Protocol):
    def save(self, payload: Mapping[str, Any]) -> Mapping[str, Any]:
        """Persist one attempt and return the stored record."""

    def list_for_step(self, step_id: int | str) -> list[Mapping[str, Any]]:
        """Return the attempts of ``step_id``, most recent first."""


class FileAttemptStore:
    """One JSON document per attempt under ``<root>/step-<id>/``."""

    def __init__(
        self, root: Path, *, logger: logging.Logger | None = None
    ) -> None:
        self.root = root
        self._logger = logger or _LOGGER
        self._lock = threading.Lock()

    def save(self, payload: Mapping[str, Any]) -> Mapping[str, Any]:
        record: MutableMapping[str, Any] = dict(payload)
        record.setdefault("id", uuid.uuid4().hex)
        record["completed_at"] = datetime.now(timezone.utc).isoformat()

        directory = self._step_dir(record.get("step_id"))
        with self._lock:
            sequence = _next_sequence(directory)
            target = directory / f"{sequence:06d}-{record['id']}.json"
            try:
                _atomic_write_json(target, record)
            except OSError as exc:
                raise AttemptStoreError(
                    f"Failed to write attempt file {target}: {exc}"
                ) from exc
        return record

    def list_for_step(self, step_id: int | str) -> list[Mapping[str, Any]]:
        directory = self._step_dir(step_id, create=False)
        if not directory.is_dir():
            return []
        records: list[Mapping[str, Any]] = []
        for path in sorted(
            directory.glob("*.json"), key=_sequence_key, reverse=True
        ):
            try:
                loaded = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                self._logger.warning(
                    "Skipping unreadable attempt file",
                    extra={"path": str(path), "error": str(exc)},
                )
                continue
            if not isinstance(loaded, dict):
                self._logger.warning(
                    "Skipping attempt file without an object payload",
                    extra={"path": str(path)},
                )
                continue
            records.append(loaded)
        return records

    def _step_dir(self, step_id: object, *, create: bool = True) -> Path:
        directory = self.root / _step_dirname(step_id)
        if create:
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise AttemptStoreError(
                    f"Unable to create attempt directory {directory}: {exc}"
                ) from exc
        return directory


class HttpAttemptStore:
    """Client for the ``/progress`` endpoints of the course API."""

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        timeout_seconds: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._headers = {"Accept": "application/json"}
        if token:
            self._headers["Authorization"] = f"Bearer {token}"
        self._client = client or httpx.Client(
            timeout=httpx.Timeout(timeout_seconds),
            follow_redirects=True,
        )

    @classmethod
    def from_env(
        cls,
        env: Mapping[str, str] | None = None,
        *,
        base_url: str | None = None,
        timeout_seconds: float = 10.0,
    ) -> "HttpAttemptStore":
        """Build a store from the API env variables (or ``.env``)."""

        load_dotenv(find_dotenv(usecwd=True))
        env_map = os.environ if env is None else env
        url = base_url or env_map.get(API_URL_ENV)
        if not url:
            raise AttemptStoreError(
                f"{API_URL_ENV} not found in environment. Set it or add to "
                ".env"
            )
        return cls(
            url,
            token=env_map.get(API_TOKEN_ENV) or None,
            timeout_seconds=timeout_seconds,
        )

    def save(self, payload: Mapping[str, Any]) -> Mapping[str, Any]:
        body = self._request(
            "POST", "/progress/quiz-attempt", json=dict(payload)
        )
        if isinstance(body, dict):
            return body
        return dict(payload)

    def list_for_step(self, step_id: int | str) -> list[Mapping[str, Any]]:
        body = self._request("GET", f"/progress/quiz-attempts/step/{step_id}")
        if isinstance(body, dict) and isinstance(body.get("results"), list):
            body = body["results"]
        if not isinstance(body, list):
            raise AttemptStoreError(
                "Expected a list of attempts from the progress API."
            )
        return [item for item in body if isinstance(item, dict)]

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "HttpAttemptStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self._client.request(
                method, url, headers=self._headers, **kwargs
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise AttemptStoreError(f"{method} {url} failed: {exc}") from exc
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise AttemptStoreError(
                f"{method} {url} returned invalid JSON."
            ) from exc


def _step_dirname(step_id: object) -> str:
    raw = str(step_id)
    safe = _UNSAFE_CHARS.sub("_", raw)
    if safe != raw:
        # distinct ids may sanitize to the same name
        digest = hashlib.sha256(raw.encode("utf-8")).hexdigest()[:8]
        safe = f"{safe}-{digest}"
    return f"step-{safe}"


def _sequence_key(path: Path) -> tuple[int, str]:
    match = _SEQUENCE_PREFIX.match(path.name)
    return (int(match.group(1)) if match else 0, path.name)


def _next_sequence(directory: Path) -> int:
    """Return one past the highest ``NNNNNN-`` prefix in ``directory``."""

    highest = 0
    for path in directory.glob("*.json"):
        highest = max(highest, _sequence_key(path)[0])
    return highest + 1


def _atomic_write_json(path: Path, payload: Mapping[str, Any]) -> None:
    handle = tempfile.NamedTemporaryFile(
        "w",
        delete=False,
        encoding="utf-8",
        dir=str(path.parent),
        suffix=".tmp",
    )
    try:
        with handle:
            json.dump(payload, handle, indent=2, sort_keys=True)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(handle.name, path)
    except BaseException:
        Path(handle.name).unlink(missing_ok=True)
        raise
    try:
        path.chmod(0o600)
    except PermissionError:  # pragma: no cover - depends on filesystem
        pass
