"""
Named task registry backing the progress_tracker tool.

Task names are unique keys; starting an existing name restarts it.
Timestamps never run backwards within one task.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from mediascope.progress.notifier import ProgressNotifier


class TaskStatus(str, Enum):
    STARTED = "started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass
class ProgressTask:
    name: str
    status: TaskStatus = TaskStatus.STARTED
    progress: float = 0.0
    message: str = ""
    start_time: float = 0.0
    end_time: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status.value,
            "progress": self.progress,
            "message": self.message,
            "start_time": self.start_time,
            "end_time": self.end_time,
        }


class ProgressTracker:
    """
    Registry of named tasks with lifecycle notifications.

    Args:
        notifier: Receives a notification on every transition.
        clock: Wall-clock source (seconds), injectable for tests.
    """

    TOOL_NAME = "progress_tracker"

    def __init__(
        self,
        notifier: Optional[ProgressNotifier] = None,
        clock: Any = time.time,
    ) -> None:
        self._notifier = notifier or ProgressNotifier()
        self._clock = clock
        self._tasks: dict[str, ProgressTask] = {}

    def start(self, name: str, message: str = "") -> ProgressTask:
        task = ProgressTask(name=name, message=message, start_time=self._clock())
        self._tasks[name] = task
        self._notifier.notify(
            self.TOOL_NAME, "started", message or f"Task {name} started", task=name,
        )
        return task

    def update(
        self,
        name: str,
        progress: Optional[float] = None,
        message: str = "",
    ) -> Optional[ProgressTask]:
        """Move a task to in_progress. Returns None for an unknown task."""
        task = self._tasks.get(name)
        if task is None:
            return None
        task.status = TaskStatus.IN_PROGRESS
        if progress is not None:
            task.progress = max(0.0, min(100.0, float(progress)))
        if message:
            task.message = message
        self._notifier.notify(
            self.TOOL_NAME, "progress", task.message or f"Task {name} at {task.progress:.0f}%",
            task=name, progress=task.progress,
        )
        return task

    def complete(self, name: str, message: str = "") -> Optional[ProgressTask]:
        """Mark a task completed. Returns None for an unknown task."""
        task = self._tasks.get(name)
        if task is None:
            return None
        task.status = TaskStatus.COMPLETED
        task.progress = 100.0
        task.end_time = max(self._clock(), task.start_time)
        if message:
            task.message = message
        self._notifier.notify(
            self.TOOL_NAME, "completed", task.message or f"Task {name} completed", task=name,
        )
        return task

    def get(self, name: Optional[str] = None) -> list[ProgressTask]:
        if name is not None:
            task = self._tasks.get(name)
            return [task] if task else []
        return list(self._tasks.values())

    def __len__(self) -> int:
        return len(self._tasks)
