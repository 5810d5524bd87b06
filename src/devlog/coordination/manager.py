"""Workspace lease protocol: acquire, release, check, force override.

Only one unexpired lock exists per workspace. A holder that crashes is
never detected directly; its lease simply lapses and the next acquirer
reclaims it. This trades strict liveness for availability.
"""

from __future__ import annotations

import os
from datetime import timedelta
from pathlib import Path

from devlog.clock import Clock, SystemClock
from devlog.coordination.schema import Lock, LockGrant, LockStatus
from devlog.coordination.store import LockStore
from devlog.errors import LockHeldError, NoOpReleaseError, StaleWriteError
from devlog.logging import get_logger

log = get_logger("coordination")

DEFAULT_LEASE_MINUTES = 30.0


class LockManager:
    """Acquire/release/check over a LockStore.

    Every decision that depends on the current lock is taken inside the
    store's transaction, so two racing acquirers are serialized and exactly
    one of them wins.
    """

    def __init__(
        self,
        store: LockStore,
        *,
        lease_minutes: float = DEFAULT_LEASE_MINUTES,
        clock: Clock | None = None,
    ) -> None:
        if lease_minutes <= 0:
            raise ValueError("lease_minutes must be positive")
        self._store = store
        self._lease = timedelta(minutes=lease_minutes)
        self._clock = clock or SystemClock()

    @classmethod
    def for_root(cls, root: str | Path, **kwargs) -> LockManager:
        guard_timeout = kwargs.pop("guard_timeout", 10.0)
        return cls(LockStore(root, guard_timeout=guard_timeout), **kwargs)

    @property
    def lease(self) -> timedelta:
        return self._lease

    @property
    def store(self) -> LockStore:
        return self._store

    def acquire(self, holder_id: str, session_id: str, force: bool = False) -> LockGrant:
        """Take or refresh the workspace lease.

        Args:
            holder_id: Agent asking for the lease.
            session_id: Session the lease will guard.
            force: Overwrite an unexpired lock held by someone else.

        Returns:
            LockGrant describing the lock now on record.

        Raises:
            LockHeldError: Another holder's lease is still valid and force is False.
            StorageError: The store could not be read or written.
        """
        with self._store.transaction():
            now = self._clock.now()
            current = self._store.read()

            if current is not None and not current.is_expired(now):
                if current.is_held_by(holder_id):
                    if current.session_id == session_id:
                        lock = current.renewed(now, self._lease)
                        self._store.write(lock)
                        log.debug("Lease renewed for %s until %s", holder_id, lock.expires_at)
                        return LockGrant(lock=lock, renewed=True)
                elif not force:
                    log.info(
                        "Acquire by %s refused: held by %s until %s",
                        holder_id,
                        current.holder_id,
                        current.expires_at,
                    )
                    raise LockHeldError(current.holder_id, current.session_id, current.expires_at)

            lock = Lock(
                holder_id=holder_id,
                session_id=session_id,
                acquired_at=now,
                expires_at=now + self._lease,
                last_heartbeat=now,
                pid=os.getpid(),
            )
            self._store.write(lock)

        grant = LockGrant(lock=lock)
        if current is not None:
            if current.is_expired(now):
                grant.reclaimed = current
                log.info("%s reclaimed stale lock from %s", holder_id, current.holder_id)
            elif not current.is_held_by(holder_id):
                grant.displaced = current
                log.warning("%s forced the lock away from %s", holder_id, current.holder_id)
        log.info("Workspace lock granted to %s (session %s)", holder_id, session_id)
        return grant

    def renew(self, holder_id: str, session_id: str) -> LockGrant:
        """Push out the expiry of the lock ``holder_id`` holds for ``session_id``.

        Unlike ``acquire`` this never creates a lock. An expired lock that
        nobody reclaimed is still renewed.

        Raises:
            LockHeldError: The lock now belongs to another holder or session.
            StaleWriteError: There is no lock to renew.
        """
        with self._store.transaction():
            now = self._clock.now()
            current = self._store.read()
            if current is None:
                raise StaleWriteError(session_id, None)
            if not current.is_held_by(holder_id) or current.session_id != session_id:
                raise LockHeldError(current.holder_id, current.session_id, current.expires_at)
            lock = current.renewed(now, self._lease)
            self._store.write(lock)
        log.debug("Lease renewed for %s until %s", holder_id, lock.expires_at)
        return LockGrant(lock=lock, renewed=True)

    def release(self, holder_id: str) -> Lock:
        """Remove the lock if ``holder_id`` holds it.

        A stale lock still on record can be released by its own holder.

        Returns:
            The lock that was removed.

        Raises:
            NoOpReleaseError: No lock, or it belongs to someone else. Nothing changed.
        """
        with self._store.transaction():
            current = self._store.read()
            if current is None or not current.is_held_by(holder_id):
                raise NoOpReleaseError(holder_id, current.holder_id if current else None)
            self._store.delete()
        log.info("Workspace lock released by %s", holder_id)
        return current

    def check(self) -> LockStatus:
        """Current lock and whether it is stale. Read-only, takes no guard."""
        now = self._clock.now()
        lock = self._store.read()
        return LockStatus(
            lock=lock,
            is_stale=lock is not None and lock.is_expired(now),
            checked_at=now,
        )

    def verify(self, session_id: str) -> Lock:
        """Ensure ``session_id`` still owns the lock before writing on its behalf.

        An expired lock that nobody reclaimed still counts as owned.

        Raises:
            StaleWriteError: The lock is gone or belongs to another session.
        """
        lock = self._store.read()
        if lock is None:
            raise StaleWriteError(session_id, None)
        if lock.session_id != session_id:
            raise StaleWriteError(session_id, lock.session_id, lock.holder_id)
        return lock
