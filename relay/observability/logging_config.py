"""
Structured logging for the LLM relay.

Plain stdlib logging: modules call logging.getLogger(__name__) and log an
event name with structured fields in `extra`. This module decides how
those records are rendered.

- RELAY_ENV=production: one JSON object per line on stdout
- anything else: compact colored lines on stderr

Every record emitted while the router serves a request carries that
request's request_id.

Usage:
    from relay.observability.logging_config import configure_logging

    configure_logging()
    logging.getLogger(__name__).info(
        "llm_completed", extra={"provider": "claude", "tokens": 812},
    )
"""

from __future__ import annotations

import json
import logging
import os
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Iterator, Optional

ENV_VAR = "RELAY_ENV"

# Per asyncio task; threading.local would be shared by every task on the loop.
_request_id: ContextVar[Optional[str]] = ContextVar("relay_request_id", default=None)


def set_request_id(request_id: str) -> None:
    """Tag log records from the current task with `request_id`."""
    _request_id.set(request_id)


def get_request_id() -> Optional[str]:
    return _request_id.get()


def clear_request_id() -> None:
    _request_id.set(None)


class ContextFilter(logging.Filter):
    """Copies the active request_id onto each record. Never drops records."""

    def filter(self, record: logging.LogRecord) -> bool:
        current = _request_id.get()
        if current:
            record.request_id = current  # type: ignore[attr-defined]
        return True


# Attributes every LogRecord has; anything else came in through `extra`.
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


def _extra_fields(record: logging.LogRecord) -> Iterator[tuple[str, Any]]:
    for key, value in vars(record).items():
        if key not in _RECORD_ATTRS and not key.startswith("_"):
            yield key, value


class JSONFormatter(logging.Formatter):
    """Renders a record as a single JSON line with its extra fields merged in."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in _extra_fields(record):
            try:
                json.dumps(value)
            except (TypeError, ValueError):
                value = repr(value)
            payload[key] = value

        if record.exc_info and record.exc_info[1] is not None:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


class DevFormatter(logging.Formatter):
    """
    Human-readable output for a terminal.

        12:04:55 WARNING  relay.llm.router llm_provider_failed provider=claude error=...

    Only the fields listed in FIELDS are shown, so credentials or large
    payloads passed in `extra` stay off the console.
    """

    FIELDS = (
        "request_id", "provider", "model", "requested_provider",
        "latency_ms", "tokens", "chunks", "error",
    )

    _LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[1;31m",
    }
    _RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self._LEVEL_COLORS.get(record.levelname, "")
        fields = " ".join(
            f"{name}={getattr(record, name)}"
            for name in self.FIELDS
            if getattr(record, name, None) is not None
        )
        line = (
            f"{self.formatTime(record, '%H:%M:%S')} "
            f"{color}{record.levelname:<8}{self._RESET} "
            f"{record.name} {record.getMessage()}"
        )
        if fields:
            line = f"{line} {fields}"
        if record.exc_info and record.exc_info[1] is not None:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def configure_logging(
    env: Optional[str] = None,
    level: int | str = logging.INFO,
) -> None:
    """
    Install a single root handler for `env` (default: $RELAY_ENV or
    "development"). `level` may be a number or a name such as "debug";
    an unknown name falls back to INFO with a warning. Existing root
    handlers are removed.
    """
    env = (env or os.environ.get(ENV_VAR) or "development").strip().lower()
    unknown_level: Optional[str] = None
    if isinstance(level, str):
        resolved = logging.getLevelName(level.strip().upper())
        if isinstance(resolved, int):
            level = resolved
        else:
            unknown_level, level = level, logging.INFO

    if env == "production":
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(DevFormatter())
    handler.addFilter(ContextFilter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    if unknown_level is not None:
        logging.getLogger(__name__).warning(
            "unknown_log_level", extra={"requested_level": unknown_level},
        )
