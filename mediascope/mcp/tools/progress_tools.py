"""
Progress MCP tool.

    progress_tracker()  → ProgressTracker start / update / complete / get,
                          plus history from the notification ring buffer

Does not need a live browser session.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from mediascope.exceptions import InvalidArgumentError
from mediascope.mcp.tools.base import browser_tool, dump, resolve_manager

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50


@browser_tool("progress_tracker")
async def progress_tracker(
    action: str,
    task_name: Optional[str] = None,
    progress: Optional[float] = None,
    message: str = "",
    *,
    _manager: Any = None,
) -> str:
    """
    Track named tasks and read recent progress notifications.

    Args:
        action: start, update, complete, get, or history.
        task_name: Task key (required for start/update/complete; filters
            get; filters history by tool name).
        progress: 0-100 for update; clamped.
        message: Free-text status.
        _manager: Injected SessionManager (for testing/DI).
    """
    manager = resolve_manager(_manager)
    tracker = manager.tracker

    if action == "get":
        tasks = tracker.get(task_name)
        return dump({"success": True, "count": len(tasks), "tasks": [t.to_dict() for t in tasks]})
    if action == "history":
        events = manager.notifier.history.query(tool=task_name, limit=DEFAULT_HISTORY_LIMIT)
        return dump({"success": True, "count": len(events), "notifications": events})
    if action not in ("start", "update", "complete"):
        raise InvalidArgumentError(f"Unknown action: {action}", argument="action")
    if not task_name:
        raise InvalidArgumentError(f"{action} needs task_name", argument="task_name")

    if action == "start":
        task = tracker.start(task_name, message)
    elif action == "update":
        task = tracker.update(task_name, progress, message)
    else:
        task = tracker.complete(task_name, message)

    if task is None:
        return dump({"success": False, "error": f"Unknown task: {task_name}"})
    return dump({"success": True, "task": task.to_dict()})
