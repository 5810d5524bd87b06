"""Error types raised by the coordination and tracking engine.

Every error is recoverable by the caller: inspect it, report it, and
retry, wait, or force. ``to_dict()`` gives presentation layers the
structured detail without having to know each subclass.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any


class DevlogError(Exception):
    """Base class for all engine errors."""

    kind = "devlog_error"

    def details(self) -> dict[str, Any]:
        return {}

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind, "message": str(self), **self.details()}


class LockHeldError(DevlogError):
    """An unexpired lease is owned by another holder and force was not requested."""

    kind = "lock_held"

    def __init__(self, holder_id: str, session_id: str, expires_at: datetime) -> None:
        self.holder_id = holder_id
        self.session_id = session_id
        self.expires_at = expires_at
        super().__init__(
            f"Workspace is locked by {holder_id} until {expires_at.isoformat()}; "
            "use force to override"
        )

    def details(self) -> dict[str, Any]:
        return {
            "holder_id": self.holder_id,
            "session_id": self.session_id,
            "expires_at": self.expires_at.isoformat(),
        }


class NoOpReleaseError(DevlogError):
    """Release attempted by someone who does not hold the lock."""

    kind = "noop_release"

    def __init__(self, holder_id: str, current_holder_id: str | None) -> None:
        self.holder_id = holder_id
        self.current_holder_id = current_holder_id
        if current_holder_id is None:
            message = f"{holder_id} tried to release the workspace but no lock is held"
        else:
            message = f"{holder_id} does not hold the workspace lock (held by {current_holder_id})"
        super().__init__(message)

    def details(self) -> dict[str, Any]:
        return {"holder_id": self.holder_id, "current_holder_id": self.current_holder_id}


class NoActiveTaskError(DevlogError):
    kind = "no_active_task"

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"No active task to {operation}")

    def details(self) -> dict[str, Any]:
        return {"operation": self.operation}


class NoPausedTaskError(DevlogError):
    kind = "no_paused_task"

    def __init__(self, task_id: str | None = None) -> None:
        self.task_id = task_id
        if task_id:
            super().__init__(f"Task {task_id} is not paused")
        else:
            super().__init__("No paused task to resume")

    def details(self) -> dict[str, Any]:
        return {"task_id": self.task_id}


class SessionNotFoundError(DevlogError):
    """Operation attempted with no live session (or an unknown session id)."""

    kind = "session_not_found"

    def __init__(self, session_id: str | None) -> None:
        self.session_id = session_id
        super().__init__(f"No live session {session_id!r}" if session_id else "No live session")

    def details(self) -> dict[str, Any]:
        return {"session_id": self.session_id}


class StaleWriteError(DevlogError):
    """The caller's lease has been superseded; its writes must stop."""

    kind = "stale_write"

    def __init__(self, session_id: str, current_session_id: str | None, current_holder_id: str | None = None) -> None:
        self.session_id = session_id
        self.current_session_id = current_session_id
        self.current_holder_id = current_holder_id
        if current_session_id is None:
            message = f"Session {session_id} no longer holds the workspace lock"
        else:
            message = (
                f"Session {session_id} was superseded by {current_session_id} "
                f"(holder {current_holder_id})"
            )
        super().__init__(message)

    def details(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "current_session_id": self.current_session_id,
            "current_holder_id": self.current_holder_id,
        }


class SessionFinalizedError(DevlogError):
    """Finalized sessions are immutable historical records."""

    kind = "session_finalized"

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Session {session_id} is finalized and cannot be modified")

    def details(self) -> dict[str, Any]:
        return {"session_id": self.session_id}


class StorageError(DevlogError):
    """Underlying storage failed; nothing was partially written."""

    kind = "storage"

    def __init__(self, operation: str, path: str, reason: str) -> None:
        self.operation = operation
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to {operation} {path}: {reason}")

    def details(self) -> dict[str, Any]:
        return {"operation": self.operation, "path": self.path, "reason": self.reason}
