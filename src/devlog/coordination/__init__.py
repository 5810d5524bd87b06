"""Workspace lease coordination.

A single lock record per workspace decides which agent may write the
shared session. Leases expire unless renewed by the heartbeat.
"""

from devlog.coordination.heartbeat import HeartbeatService
from devlog.coordination.manager import DEFAULT_LEASE_MINUTES, LockManager
from devlog.coordination.schema import Lock, LockGrant, LockStatus
from devlog.coordination.store import LockStore

__all__ = [
    "DEFAULT_LEASE_MINUTES",
    "HeartbeatService",
    "Lock",
    "LockGrant",
    "LockManager",
    "LockStatus",
    "LockStore",
]
