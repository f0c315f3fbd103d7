"""
Progress notifications for long-running tool calls.

Every tool emits `started`, optional `progress`, and a final `completed`
or `error` notification. Notifications are purely observational: a sink
that raises is logged and ignored.

Usage:
    notifier = ProgressNotifier()
    notifier.set_sink(lambda event: print(event))
    notifier.notify("stream_extractor", "started", "Scanning frames...")
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

PROGRESS_STATUSES = ("started", "progress", "completed", "error")

ProgressSink = Callable[[dict[str, Any]], Any]


class ProgressLog:
    """
    In-memory ring buffer of recent notifications.

    Oldest entries are evicted once the buffer holds `max_entries`.
    """

    def __init__(self, max_entries: int = 500):
        self._max = max_entries
        self._entries: list[dict[str, Any]] = []

    def add(self, event: dict[str, Any]) -> None:
        self._entries.append(event)
        if len(self._entries) > self._max:
            self._entries = self._entries[-self._max:]

    def query(
        self,
        tool: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        """
        Query notifications with optional filters.

        Returns:
            Matching notifications, newest first.
        """
        filtered = []
        for event in reversed(self._entries):
            if tool and event.get("tool") != tool:
                continue
            if status and event.get("status") != status:
                continue
            filtered.append(event)
            if len(filtered) >= limit:
                break
        return filtered

    @property
    def size(self) -> int:
        return len(self._entries)

    def clear(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        return count


class ProgressNotifier:
    """Builds, records, logs, and forwards progress notifications."""

    def __init__(
        self,
        sink: Optional[ProgressSink] = None,
        history: Optional[ProgressLog] = None,
    ) -> None:
        self._sink = sink
        self.history = history or ProgressLog()

    def set_sink(self, sink: Optional[ProgressSink]) -> None:
        """Register (or clear, with None) the external notification sink."""
        self._sink = sink

    def notify(
        self,
        tool: str,
        status: str,
        message: str,
        **extra: Any,
    ) -> dict[str, Any]:
        event: dict[str, Any] = {
            "tool": tool,
            "status": status,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **extra,
        }
        self.history.add(event)

        level = logging.WARNING if status == "error" else logging.INFO
        logger.log(
            level,
            "progress_notification",
            extra={"tool_name": tool, "status": status, "progress_message": message},
        )

        if self._sink is not None:
            try:
                self._sink(event)
            except Exception as e:
                logger.warning(
                    "progress_sink_failed",
                    extra={"tool_name": tool, "error": str(e)},
                )
        return event
