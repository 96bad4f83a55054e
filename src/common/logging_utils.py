"""Logging helpers shared by every module.

Provides the root logger setup used by the CLI, a helper for building
structured ``extra=`` payloads, URL redaction for log output and a small
timer used to report durations of network and disk operations.
"""

from __future__ import annotations

import logging
import os
import re
import sys
import time
from typing import Any, Dict, Optional
from urllib.parse import urlsplit, urlunsplit

from constants import Constants

_SENSITIVE_QUERY = re.compile(r"(?i)(token|auth|key|secret|password)=([^&]+)")

_HANDLER: Optional[logging.Handler] = None


def configure_logging(level: Optional[str] = None, logfile: Optional[str] = None) -> None:
    """Configure the root logger.

    Args:
        level: Level name; falls back to COREPACK_LOG_LEVEL, then INFO.
        logfile: Optional path; when set, records go to the file instead of stderr.
    """
    global _HANDLER  # pylint: disable=global-statement
    level_name = (level or os.environ.get(Constants.ENV_LOG_LEVEL) or "INFO").upper()
    root = logging.getLogger()
    # Only replace our own handler; handlers installed by embedders stay
    if _HANDLER is not None:
        root.removeHandler(_HANDLER)
        _HANDLER.close()

    if logfile:
        handler: logging.Handler = logging.FileHandler(logfile, encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(getattr(logging, level_name, logging.INFO))
    _HANDLER = handler


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records of ``logger`` would be emitted."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build an ``extra=`` mapping, dropping empty values."""
    return {key: value for key, value in fields.items() if value is not None}


def redact(text: str) -> str:
    """Mask credential-looking query parameters."""
    return _SENSITIVE_QUERY.sub(r"\1=[REDACTED]", text)


def safe_url(url: str) -> str:
    """Strip userinfo and secrets from a URL so it can be logged."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return redact(url)
    netloc = parts.hostname or ""
    if parts.port:
        netloc = f"{netloc}:{parts.port}"
    if parts.username or parts.password:
        netloc = f"[REDACTED]@{netloc}"
    return redact(urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment)))


class Timer:
    """Context manager measuring elapsed wall time."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.monotonic()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self._end = time.monotonic()

    def duration_ms(self) -> int:
        end = self._end if self._end is not None else time.monotonic()
        return int((end - self._start) * 1000)
