"""Application-wide logging configuration utilities."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Union

from agritrade import app_paths

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

LEVEL_ENV_VAR = "AGRITRADE_LOG_LEVEL"

_LOG_PATH: Optional[Path] = None


def resolve_level(level: Union[int, str, None] = None) -> int:
    """Return a numeric level from ``level``, the environment, or ``INFO``."""

    if level is None:
        level = os.environ.get(LEVEL_ENV_VAR) or logging.INFO
    if isinstance(level, int):
        return level
    numeric = logging.getLevelName(str(level).strip().upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level {level!r}")
    return numeric


def configure_logging(
    level: Union[int, str, None] = None, log_path: Optional[Path] = None
) -> Path:
    """Configure logging to write to the agritrade log file.

    Parameters
    ----------
    level:
        The minimum logging level for the root logger, as a number or a name
        such as ``"debug"``. When omitted, ``AGRITRADE_LOG_LEVEL`` is consulted
        and ``logging.INFO`` is used otherwise, which records every remote
        write and its row address without the per-request read chatter
        emitted at ``DEBUG``.
    log_path:
        Optional override for the log file location. Defaults to
        ``agritrade.log`` inside the application log directory.

    Returns
    -------
    pathlib.Path
        The path to the log file.
    """

    global _LOG_PATH

    level = resolve_level(level)
    if _LOG_PATH is not None and log_path is None:
        return _LOG_PATH

    target = Path(log_path) if log_path is not None else app_paths.logs_path("agritrade.log")
    target.parent.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    if not root_logger.handlers:
        root_logger.setLevel(level)
    else:
        root_logger.setLevel(min(root_logger.level, level))

    already_configured = any(
        isinstance(handler, logging.FileHandler)
        and getattr(handler, "baseFilename", None) == str(target.resolve())
        for handler in root_logger.handlers
    )
    if not already_configured:
        file_handler = logging.FileHandler(target, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(file_handler)

    _LOG_PATH = target
    root_logger.debug("Logging configured. Writing to %s", target)
    return target


def get_log_path() -> Path:
    """Return the path to the agritrade log file, configuring logging if needed."""

    if _LOG_PATH is None:
        return configure_logging()
    return _LOG_PATH


__all__ = ["LEVEL_ENV_VAR", "LOG_FORMAT", "configure_logging", "get_log_path", "resolve_level"]
