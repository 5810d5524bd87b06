"""Session metadata: timing, tasks and tool usage."""

from devlog.session.schema import (
    ACTIVITY_CATEGORIES,
    Pause,
    Session,
    Task,
    TaskStatus,
    Timing,
)
from devlog.session.storage import SessionStore, classify_tool
from devlog.session.tasks import TaskStateMachine

__all__ = [
    "ACTIVITY_CATEGORIES",
    "Pause",
    "Session",
    "SessionStore",
    "Task",
    "TaskStateMachine",
    "TaskStatus",
    "Timing",
    "classify_tool",
]
