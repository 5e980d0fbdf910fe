"""Centralized logging helpers.

Provides one place to configure the root logger from the environment, a
helper for structured ``extra`` payloads, a cheap debug guard, a timing
context manager and URL redaction for log output.
"""

from __future__ import annotations

import logging
import os
import sys
import time
import urllib.parse
from typing import Any, Dict, Optional

from constants import Constants

_SENSITIVE_QUERY_KEYS = {"token", "access_token", "auth", "password", "key", "secret"}


def configure_logging(stream=None) -> None:
    """Configure the root logger once, honoring RUNPKG_LOG_LEVEL."""
    level_name = os.environ.get(Constants.ENV_LOG_LEVEL, Constants.DEFAULT_LOG_LEVEL).upper()
    level = getattr(logging, level_name, logging.WARNING)

    root = logging.getLogger()
    if not any(getattr(h, "_runpkg_handler", False) for h in root.handlers):
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
        handler._runpkg_handler = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(level)


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build an ``extra`` mapping for structured log records, dropping None values."""
    return {k: v for k, v in fields.items() if v is not None}


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records would be emitted by ``logger``."""
    return logger.isEnabledFor(logging.DEBUG)


def redact(value: Optional[str]) -> str:
    """Mask a secret, keeping nothing of the original value."""
    if not value:
        return ""
    return "[REDACTED]"


def safe_url(url: str) -> str:
    """Return ``url`` with userinfo and credential-like query values redacted."""
    try:
        parts = urllib.parse.urlsplit(url)
    except ValueError:
        return url
    netloc = parts.netloc
    if "@" in netloc:
        netloc = "[REDACTED]@" + netloc.rsplit("@", 1)[1]
    query = parts.query
    if query:
        pairs = urllib.parse.parse_qsl(query, keep_blank_values=True)
        query = "&".join(
            f"{k}={redact(v) if k.lower() in _SENSITIVE_QUERY_KEYS else v}" for k, v in pairs
        )
    return urllib.parse.urlunsplit((parts.scheme, netloc, parts.path, query, parts.fragment))


class Timer:
    """Context manager measuring wall-clock duration in milliseconds."""

    def __init__(self):
        self._start: Optional[float] = None
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> float:
        """Elapsed milliseconds; usable while still inside the block."""
        if self._start is None:
            return 0.0
        end = self._end if self._end is not None else time.perf_counter()
        return round((end - self._start) * 1000, 2)
