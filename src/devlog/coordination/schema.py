"""Data schemas for workspace lease coordination."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from devlog.clock import format_timestamp, parse_optional, parse_timestamp


@dataclass
class Lock:
    """The workspace lease: who owns the shared record and until when."""

    holder_id: str
    session_id: str
    acquired_at: datetime
    expires_at: datetime
    last_heartbeat: datetime | None = None
    pid: int | None = None

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def is_held_by(self, holder_id: str) -> bool:
        return self.holder_id == holder_id

    def minutes_remaining(self, now: datetime) -> float:
        return round((self.expires_at - now).total_seconds() / 60, 2)

    def renewed(self, now: datetime, lease: timedelta) -> Lock:
        """Same grant, expiry pushed out to ``now + lease``."""
        return Lock(
            holder_id=self.holder_id,
            session_id=self.session_id,
            acquired_at=self.acquired_at,
            expires_at=now + lease,
            last_heartbeat=now,
            pid=self.pid,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "holder_id": self.holder_id,
            "session_id": self.session_id,
            "acquired_at": format_timestamp(self.acquired_at),
            "expires_at": format_timestamp(self.expires_at),
            "last_heartbeat": format_timestamp(self.last_heartbeat) if self.last_heartbeat else None,
            "pid": self.pid,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Lock:
        return cls(
            holder_id=data["holder_id"],
            session_id=data["session_id"],
            acquired_at=parse_timestamp(data["acquired_at"]),
            expires_at=parse_timestamp(data["expires_at"]),
            last_heartbeat=parse_optional(data.get("last_heartbeat")),
            pid=data.get("pid"),
        )


@dataclass
class LockStatus:
    """Read-only view of the lock for status displays.

    ``lock`` is None when the workspace is free. A stale lock (expired but
    not yet reclaimed) is a normal, displayable state.
    """

    lock: Lock | None
    is_stale: bool = False
    checked_at: datetime | None = None

    @property
    def is_held(self) -> bool:
        return self.lock is not None and not self.is_stale

    def to_dict(self) -> dict[str, Any]:
        return {
            "lock": self.lock.to_dict() if self.lock else None,
            "is_stale": self.is_stale,
            "checked_at": format_timestamp(self.checked_at) if self.checked_at else None,
        }


@dataclass
class LockGrant:
    """Result of a successful acquire."""

    lock: Lock
    renewed: bool = False  # Same holder and session refreshed its lease
    displaced: Lock | None = None  # Unexpired lock overridden with force
    reclaimed: Lock | None = None  # Stale lock taken over

    @property
    def success(self) -> bool:
        return True
