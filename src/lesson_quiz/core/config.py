"""TOML configuration helpers shared by lesson-quiz commands."""

from __future__ import annotations

import copy
import tomllib
from pathlib import Path
from typing import Any, Iterator, Mapping, MutableMapping, Optional

__all__ = [
    "TomlConfigError",
    "load_layered",
    "load_toml",
    "merge_defaults",
    "write_toml_template",
]


class TomlConfigError(RuntimeError):
    """Raised when a TOML document cannot be read, parsed or merged."""


def load_toml(path: Path) -> Mapping[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except FileNotFoundError as exc:
        raise TomlConfigError(f"Config file not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise TomlConfigError(f"Failed to parse config TOML: {exc}") from exc


def load_layered(
    defaults: Mapping[str, Any], path: Optional[Path]
) -> dict[str, Any]:
    """Return a copy of ``defaults`` with the document at ``path`` on top.

    ``defaults`` itself is never modified, so callers may keep a module
    level table. With ``path`` set to ``None`` the copy is returned as is.
    """

    table = copy.deepcopy(dict(defaults))
    if path is not None:
        merge_defaults(table, load_toml(path))
    return table


def merge_defaults(
    base: MutableMapping[str, Any],
    override: Mapping[str, Any],
    *,
    path: str = "",
) -> None:
    """Merge ``override`` into ``base`` in place.

    Every unknown key and every scalar given where a table is expected is
    reported in a single :class:`TomlConfigError`.
    """

    problems = list(_merge_into(base, override, path))
    if problems:
        raise TomlConfigError(" ".join(problems))


def _merge_into(
    base: MutableMapping[str, Any], override: Mapping[str, Any], prefix: str
) -> Iterator[str]:
    for key, value in override.items():
        dotted = f"{prefix}{key}"
        if key not in base:
            yield f"Unknown configuration key '{dotted}'."
        elif not isinstance(base[key], MutableMapping):
            base[key] = value
        elif isinstance(value, Mapping):
            yield from _merge_into(base[key], value, f"{dotted}.")
        else:
            yield (
                f"Expected table for '{dotted}', "
                f"found {type(value).__name__}."
            )


def write_toml_template(
    path: Path,
    *,
    template: str,
    overwrite: bool = False,
    mode: int = 0o600,
) -> Path:
    """Write ``template`` to ``path``, refusing to clobber unless asked."""

    if path.exists() and not overwrite:
        raise TomlConfigError(f"Config already exists: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(template, encoding="utf-8")
    try:
        path.chmod(mode)
    except PermissionError:  # pragma: no cover - depends on filesystem
        pass
    return path
