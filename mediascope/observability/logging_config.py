"""
Logging setup for the mediascope server and CLI.

Components log snake_case event names with structured fields in
`extra={...}`; configure_logging() decides how those records are
rendered:

- MEDIASCOPE_ENV=production: one JSON object per line
- anything else: a short text line with the known fields inline,
  colored only when stderr is a terminal

Both go to stderr. Under the stdio transport stdout is the MCP
channel, and a stray log line there corrupts the protocol stream.

Usage:
    from mediascope.observability.logging_config import configure_logging

    configure_logging()
    logger = logging.getLogger(__name__)
    logger.info("frame_switched", extra={"frame_index": 2, "url": url})
"""

from __future__ import annotations

import contextvars
import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Optional, TextIO

NOISY_LOGGERS = ("playwright", "asyncio", "httpx", "mcp")

# ─── Call Context ─────────────────────────────────────────────────────

_call_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "mediascope_call_id", default=None,
)


def set_call_id(call_id: str) -> None:
    """
    Mark the tool call running in the current task.

    Each asyncio task sees its own value, so concurrent tool calls never
    tag each other's records.
    """
    _call_id.set(call_id)


def get_call_id() -> Optional[str]:
    return _call_id.get()


def clear_call_id() -> None:
    _call_id.set(None)


class ContextFilter(logging.Filter):
    """Copies the current call_id onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        call_id = get_call_id()
        if call_id:
            record.call_id = call_id  # type: ignore[attr-defined]
        return True


# ─── JSON Lines ───────────────────────────────────────────────────────

# Attributes every LogRecord carries; anything else came from extra={}.
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record.

        {"timestamp": "...", "level": "INFO", "logger": "mediascope.browser.frames",
         "message": "frame_switched", "call_id": "3f2a...", "frame_index": 2}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(_extra_fields(record))
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    fields = {}
    for key, value in vars(record).items():
        if key in _RECORD_ATTRS or key.startswith("_"):
            continue
        try:
            json.dumps(value)
        except (TypeError, ValueError):
            value = str(value)
        fields[key] = value
    return fields


# ─── Text Lines ───────────────────────────────────────────────────────


class DevFormatter(logging.Formatter):
    """
    [HH:MM:SS] LEVEL logger: message [key=value ...]

    Only the fields in INLINE_KEYS are shown, in that order.

    Args:
        use_color: Wrap the level name in ANSI color codes.
    """

    COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[41m",
    }
    RESET = "\033[0m"

    INLINE_KEYS = (
        "call_id", "tool_name", "status", "url", "selector",
        "frame_index", "count", "duration_ms", "error",
    )

    def __init__(self, use_color: bool = True) -> None:
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:<8}"
        if self.use_color:
            level = f"{self.COLORS.get(record.levelno, self.RESET)}{level}{self.RESET}"

        inline = " ".join(
            f"{key}={getattr(record, key)}"
            for key in self.INLINE_KEYS
            if getattr(record, key, None) is not None
        )
        line = f"[{self.formatTime(record, '%H:%M:%S')}] {level} {record.name}: {record.getMessage()}"
        if inline:
            line += f" [{inline}]"
        if record.exc_info and record.exc_info[1]:
            line += "\n" + self.formatException(record.exc_info)
        return line


# ─── Configuration ────────────────────────────────────────────────────


def configure_logging(
    env: Optional[str] = None,
    level: int = logging.INFO,
    stream: Optional[TextIO] = None,
) -> None:
    """
    Replace the root logger's handlers with a single stderr handler.

    Args:
        env: "production" for JSON lines; defaults to MEDIASCOPE_ENV,
            then "development".
        level: Root log level.
        stream: Output stream (default: sys.stderr).
    """
    env = (env or os.environ.get("MEDIASCOPE_ENV", "development")).lower().strip()
    stream = stream or sys.stderr

    root = logging.getLogger()
    root.setLevel(level)
    for existing in root.handlers[:]:
        root.removeHandler(existing)

    handler = logging.StreamHandler(stream)
    if env == "production":
        handler.setFormatter(JSONFormatter())
    else:
        isatty = getattr(stream, "isatty", None)
        handler.setFormatter(DevFormatter(use_color=bool(isatty and isatty())))
    handler.addFilter(ContextFilter())
    root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
