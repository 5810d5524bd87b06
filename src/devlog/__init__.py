"""devlog: multi-agent workspace leases and session time tracking."""

__version__ = "0.1.0"

from devlog.clock import ManualClock, SystemClock, duration_minutes, format_duration
from devlog.config import Config, load_config
from devlog.coordination import HeartbeatService, Lock, LockGrant, LockManager, LockStatus, LockStore
from devlog.errors import (
    DevlogError,
    LockHeldError,
    NoActiveTaskError,
    NoOpReleaseError,
    NoPausedTaskError,
    SessionFinalizedError,
    SessionNotFoundError,
    StaleWriteError,
    StorageError,
)
from devlog.session import Pause, Session, SessionStore, Task, TaskStateMachine, TaskStatus, Timing
from devlog.workspace import Workspace, WorkspaceStatus

__all__ = [
    # Entry point
    "Workspace",
    "WorkspaceStatus",
    # Config
    "Config",
    "load_config",
    # Coordination
    "HeartbeatService",
    "Lock",
    "LockGrant",
    "LockManager",
    "LockStatus",
    "LockStore",
    # Sessions
    "Pause",
    "Session",
    "SessionStore",
    "Task",
    "TaskStateMachine",
    "TaskStatus",
    "Timing",
    # Time
    "ManualClock",
    "SystemClock",
    "duration_minutes",
    "format_duration",
    # Errors
    "DevlogError",
    "LockHeldError",
    "NoActiveTaskError",
    "NoOpReleaseError",
    "NoPausedTaskError",
    "SessionFinalizedError",
    "SessionNotFoundError",
    "StaleWriteError",
    "StorageError",
]
