"""Logging helpers for the event feed.

Features:
- console handler with a compact text format
- context injection (feed/source) through ``extra=``
- rate-limited warnings for noisy network failures
"""

from __future__ import annotations

import logging
import sys
import time
from collections.abc import Callable
from typing import Any

# ---------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------


class TextFormatter(logging.Formatter):
    """Format log records as human-readable text."""

    def format(self, record: logging.LogRecord) -> str:
        """Render ``LEVEL logger [ctx] message``."""
        parts = [record.levelname, record.name]

        ctx = []
        for key in ("feed_id", "source_id", "generation"):
            value = getattr(record, key, None)
            if value is not None:
                ctx.append(f"{key.split('_')[0]}={value}")

        if ctx:
            parts.append("[" + " ".join(ctx) + "]")

        parts.append(record.getMessage())
        s = " ".join(parts)

        if record.exc_info:
            s += "\n" + self.formatException(record.exc_info)

        return s


# ---------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a stdout handler to the ``event_feed`` logger tree."""
    logger = logging.getLogger("event_feed")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Prevent duplicate handlers in repeated calls
    for h in logger.handlers:
        if getattr(h, "_event_feed_console", False):
            return logger

    ch = logging.StreamHandler(sys.stdout)
    ch.setLevel(logger.level)
    ch.setFormatter(TextFormatter())
    ch._event_feed_console = True
    logger.addHandler(ch)
    return logger


# ---------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------


class RateLimitedLogger:
    """
    Emit at most one record per key every ``min_interval_s`` seconds.

    Used for warnings that would otherwise repeat on every refresh while the
    network is down. Suppressed calls are counted and the count is appended to
    the next emitted record.
    """

    def __init__(
        self,
        logger: logging.Logger,
        min_interval_s: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if min_interval_s < 0:
            raise ValueError("min_interval_s must be >= 0")
        self.logger = logger
        self.min_interval_s = min_interval_s
        self._clock = clock
        self._last_emit: dict[str, float] = {}
        self._suppressed: dict[str, int] = {}

    def log(self, level: int, key: str, msg: str, *args: Any, **kwargs: Any) -> bool:
        """Log ``msg`` unless ``key`` was logged less than the interval ago."""
        now = self._clock()
        last = self._last_emit.get(key)
        if last is not None and now - last < self.min_interval_s:
            self._suppressed[key] = self._suppressed.get(key, 0) + 1
            return False

        self._last_emit[key] = now
        suppressed = self._suppressed.pop(key, 0)
        if suppressed:
            msg = f"{msg} (suppressed {suppressed} similar)"
        self.logger.log(level, msg, *args, **kwargs)
        return True

    def warning(self, key: str, msg: str, *args: Any, **kwargs: Any) -> bool:
        return self.log(logging.WARNING, key, msg, *args, **kwargs)

    def error(self, key: str, msg: str, *args: Any, **kwargs: Any) -> bool:
        return self.log(logging.ERROR, key, msg, *args, **kwargs)

    def reset(self, key: str | None = None) -> None:
        """Forget emission history for ``key`` (or every key)."""
        if key is None:
            self._last_emit.clear()
            self._suppressed.clear()
        else:
            self._last_emit.pop(key, None)
            self._suppressed.pop(key, None)
