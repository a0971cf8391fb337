"""Centralised helpers for managing agritrade application directories."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable

_APP_ENV_VARS: Iterable[str] = ("AGRITRADE_HOME", "LOCALAPPDATA", "XDG_DATA_HOME")


def _detect_base_directory() -> Path:
    for env_var in _APP_ENV_VARS:
        value = os.environ.get(env_var)
        if not value:
            continue
        base = Path(value).expanduser().resolve()
        if env_var == "AGRITRADE_HOME":
            return base
        return base / "agritrade"
    return Path.home().resolve() / ".agritrade"


APP_DIR: Path = _detect_base_directory()
LOG_DIR: Path = APP_DIR / "logs"


def ensure_directory(path: Path) -> Path:
    """Ensure that ``path`` exists, returning the :class:`~pathlib.Path`."""

    path.mkdir(parents=True, exist_ok=True)
    return path


def data_path(*parts: str) -> Path:
    """Return a path rooted inside :data:`APP_DIR`, creating parent directories."""

    target = APP_DIR.joinpath(*parts)
    ensure_directory(target.parent)
    return target


def logs_path(*parts: str) -> Path:
    """Return a path rooted inside :data:`LOG_DIR`, creating parent directories."""

    target = LOG_DIR.joinpath(*parts)
    ensure_directory(target.parent)
    return target


__all__ = [
    "APP_DIR",
    "LOG_DIR",
    "data_path",
    "ensure_directory",
    "logs_path",
]
