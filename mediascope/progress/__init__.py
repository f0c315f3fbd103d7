"""
Progress reporting for mediascope tools.

Components:
- ProgressNotifier: emits {tool, status, message, timestamp} notifications
  to the log, an in-memory ring buffer, and an optional external sink
- ProgressLog: the ring buffer behind progress_tracker's history action
- ProgressTracker: named task registry (start/update/complete/get)
"""

from mediascope.progress.notifier import ProgressLog, ProgressNotifier
from mediascope.progress.tracker import ProgressTask, ProgressTracker, TaskStatus

__all__ = [
    "ProgressLog",
    "ProgressNotifier",
    "ProgressTask",
    "ProgressTracker",
    "TaskStatus",
]
