"""Centralized logging helpers.

Every module logs through ``logging.getLogger(__name__)``; this module owns
handler setup plus the small helpers used for structured DEBUG traces.
"""
from __future__ import annotations

import logging
import os
import sys
import time
from typing import Any, Dict, Optional
from urllib.parse import urlsplit, urlunsplit

from constants import Constants

_CONTEXT_FIELDS = (
    "event",
    "component",
    "action",
    "outcome",
    "target",
    "package",
    "state",
    "status_code",
    "exit_code",
    "duration_ms",
    "attempt",
    "count",
)


class ContextFormatter(logging.Formatter):
    """Formatter that appends structured context fields at DEBUG level."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        if record.levelno > logging.DEBUG:
            return base
        pairs = []
        for name in _CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                pairs.append(f"{name}={value}")
        if not pairs:
            return base
        return f"{base} ({' '.join(pairs)})"


def _level_from_env(default: int = logging.INFO) -> int:
    name = os.environ.get(Constants.ENV_LOG_LEVEL, "").strip().upper()
    if not name:
        return default
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else default


def configure_logging(level: Optional[int] = None) -> None:
    """Install a single console handler on the root logger.

    Safe to call more than once: previously installed console handlers from
    this function are replaced rather than duplicated.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_coreshift_console", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(ContextFormatter(Constants.LOG_FORMAT))
    handler._coreshift_console = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(level if level is not None else _level_from_env())


def add_file_handler(path: str) -> None:
    """Mirror log output to ``path`` with timestamps."""
    file_handler = logging.FileHandler(path, encoding="utf-8")
    file_handler.setFormatter(ContextFormatter(Constants.LOG_FILE_FORMAT))
    logging.getLogger().addHandler(file_handler)


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records from ``logger`` would be emitted."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build an ``extra=`` mapping, dropping fields that are None."""
    return {key: value for key, value in fields.items() if value is not None}


def safe_url(url: str) -> str:
    """Strip credentials and query strings from a URL before logging it."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return "<unparseable-url>"
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    return urlunsplit((parts.scheme, host, parts.path, "", ""))


class Timer:
    """Context manager measuring wall-clock duration in milliseconds."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        self._end = None
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> int:
        end = self._end if self._end is not None else time.perf_counter()
        return int((end - self._start) * 1000)
