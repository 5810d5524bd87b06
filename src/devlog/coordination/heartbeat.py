"""Periodic lease renewal for a live session.

The heartbeat renews the lease every interval. Renewal only extends the
lock this holder already has for this session. If the lock is gone or now
belongs to another holder or session, the service stops and tells its owner through ``on_lost``; the owner must stop
mutating the session at that point.
"""

from __future__ import annotations

import threading
from collections.abc import Callable

from devlog.coordination.manager import LockManager
from devlog.coordination.schema import LockGrant
from devlog.errors import LockHeldError, StaleWriteError, StorageError
from devlog.logging import get_logger

log = get_logger("heartbeat")

LeaseLost = LockHeldError | StaleWriteError
LostCallback = Callable[[LeaseLost], None]


class HeartbeatService:
    """Renews one holder's lease on a background daemon thread."""

    def __init__(
        self,
        manager: LockManager,
        *,
        interval_seconds: float | None = None,
        on_lost: LostCallback | None = None,
    ) -> None:
        """Initialize the heartbeat.

        Args:
            manager: Lock manager whose lease is renewed.
            interval_seconds: Renewal period; defaults to a third of the lease.
            on_lost: Called once, from the heartbeat thread, when the lease is lost.
        """
        self._manager = manager
        self._interval = (
            interval_seconds
            if interval_seconds is not None
            else manager.lease.total_seconds() / 3
        )
        if self._interval <= 0:
            raise ValueError("interval_seconds must be positive")
        self._on_lost = on_lost
        self._holder_id: str | None = None
        self._session_id: str | None = None
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._lost: LeaseLost | None = None
        self._renewals = 0

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def lost(self) -> LeaseLost | None:
        """The refusal that ended the heartbeat, if the lease was lost."""
        return self._lost

    @property
    def renewals(self) -> int:
        return self._renewals

    @property
    def holder_id(self) -> str | None:
        return self._holder_id

    def start(self, holder_id: str, session_id: str) -> None:
        """Begin renewing ``holder_id``'s lease for ``session_id``."""
        if self.running:
            if (holder_id, session_id) == (self._holder_id, self._session_id):
                return
            self.stop()

        self._holder_id = holder_id
        self._session_id = session_id
        self._lost = None
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            args=(self._stop_event,),
            name=f"devlog-heartbeat-{session_id}",
            daemon=True,
        )
        self._thread.start()
        log.debug("Heartbeat started for %s (every %.0fs)", session_id, self._interval)

    def stop(self) -> None:
        """Cancel the timer. Safe to call from any thread, including the heartbeat's."""
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=5)
        self._thread = None
        log.debug("Heartbeat stopped for %s", self._session_id)

    def beat(self) -> LockGrant | None:
        """Renew the lease once.

        Returns:
            The grant, or None if the lease was lost or storage failed.
        """
        if self._holder_id is None or self._session_id is None:
            raise RuntimeError("Heartbeat has not been started")
        try:
            grant = self._manager.renew(self._holder_id, self._session_id)
        except (LockHeldError, StaleWriteError) as e:
            self._handle_lost(e)
            return None
        except StorageError as e:
            # Transient; the next tick tries again before the lease runs out
            log.warning("Heartbeat renewal failed for %s: %s", self._session_id, e)
            return None
        self._renewals += 1
        return grant

    def _run(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self._interval):
            self.beat()

    def _handle_lost(self, error: LeaseLost) -> None:
        log.warning("Lease for session %s lost (%s); stopping heartbeat", self._session_id, error)
        self._lost = error
        self._stop_event.set()
        if self._on_lost is not None:
            try:
                self._on_lost(error)
            except Exception:
                log.exception("Lease-lost callback failed")
