"""Structured logging for the cache.

Log records carry the cache session and the signed-in user, taken from context
variables so that tasks spawned inside a ``LogContext`` inherit them.

Usage:
    from rayhar.observability.logging import LogContext, configure_logging

    configure_logging(json_format=False, level="DEBUG")

    with LogContext(session_id=runtime.session.current(), user_id=identity.user_id):
        await runtime.warmer.warm(identity)
"""

from __future__ import annotations

import contextvars
import logging
import sys
from datetime import datetime, timezone
from typing import Any

import orjson

session_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("session_id", default="")
user_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("user_id", default="")

_CONTEXT_VARS = {"session_id": session_id_var, "user_id": user_id_var}

# Attributes every LogRecord has; anything else came in through ``extra``
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def _context() -> dict[str, str]:
    return {name: var.get() for name, var in _CONTEXT_VARS.items() if var.get()}


class JsonFormatter(logging.Formatter):
    """One JSON object per record.

    {"timestamp": "...", "level": "INFO", "logger": "rayhar.cache.warmer",
     "message": "Caches warmed", "session_id": "3f9a...", "cached": 9}
    """

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        data.update(_context())
        data.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        )
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        return orjson.dumps(data, default=str).decode()


class ConsoleFormatter(logging.Formatter):
    """Single-line format for development.

    2026-01-10 12:34:56 | INFO     | rayhar.cache.janitor | Started cache janitor | sess=3f9a1c2e
    """

    def __init__(self) -> None:
        super().__init__(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s", "%Y-%m-%d %H:%M:%S"
        )

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        short = {"session_id": "sess", "user_id": "user"}
        context = " ".join(f"{short[name]}={value[:8]}" for name, value in _context().items())
        return f"{line} | {context}" if context else line


def configure_logging(json_format: bool = True, level: str = "INFO") -> None:
    """Send every log record to stderr, as JSON or console lines."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter() if json_format else ConsoleFormatter())

    root = logging.getLogger()
    root.setLevel(level.upper())
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)

    # Redis client logs every reconnect at INFO
    logging.getLogger("redis").setLevel(logging.WARNING)


class LogContext:
    """Set session and user ids for the records logged inside the block.

    with LogContext(session_id="3f9a...", user_id="b1c2..."):
        logger.info("Warming caches")
    """

    def __init__(self, **ids: str) -> None:
        unknown = set(ids) - set(_CONTEXT_VARS)
        if unknown:
            raise TypeError(f"Unknown log context fields: {sorted(unknown)}")
        self.ids = ids
        self._tokens: list[tuple[contextvars.ContextVar[str], contextvars.Token[str]]] = []

    def __enter__(self) -> LogContext:
        for name, value in self.ids.items():
            var = _CONTEXT_VARS[name]
            self._tokens.append((var, var.set(value)))
        return self

    def __exit__(self, *exc: object) -> None:
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)
