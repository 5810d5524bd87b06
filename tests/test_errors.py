"""Tests for structured error details."""

from __future__ import annotations

from datetime import datetime, timezone

from devlog.errors import (
    DevlogError,
    LockHeldError,
    NoOpReleaseError,
    StaleWriteError,
    StorageError,
)


class TestErrorDetails:
    def test_lock_held(self) -> None:
        expires = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)
        error = LockHeldError("agent-a", "s1", expires)

        data = error.to_dict()
        assert data["error"] == "lock_held"
        assert data["holder_id"] == "agent-a"
        assert data["expires_at"] == "2026-03-02T09:30:00+00:00"
        assert "agent-a" in data["message"]

    def test_noop_release_messages(self) -> None:
        assert "no lock is held" in str(NoOpReleaseError("agent-a", None))
        assert "held by agent-b" in str(NoOpReleaseError("agent-a", "agent-b"))

    def test_stale_write(self) -> None:
        error = StaleWriteError("s1", "s2", "agent-b")
        assert error.to_dict()["current_session_id"] == "s2"
        assert "superseded" in str(error)

    def test_common_base(self) -> None:
        error = StorageError("write", "/tmp/x.yaml", "disk full")
        assert isinstance(error, DevlogError)
        assert error.to_dict()["reason"] == "disk full"
