"""Workspace: the claim → track → end control flow over the stores.

A caller claims the workspace lease, which starts the heartbeat and
creates the live session. Task commands and tool usage then mutate that
session, each one as a guarded load-verify-mutate-save. Ending the session
stops the heartbeat, finalizes the record and releases the lease (or
leaves it to lapse for a hand-off).

Sessions are addressed explicitly by id; there is no implicit "current"
session beyond the one live slot in storage.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

from devlog.clock import Clock, SystemClock
from devlog.config import Config, load_config
from devlog.coordination import HeartbeatService, LockManager, LockStatus, LockStore
from devlog.coordination.heartbeat import LeaseLost
from devlog.errors import (
    LockHeldError,
    NoOpReleaseError,
    SessionNotFoundError,
    StaleWriteError,
)
from devlog.logging import get_logger, setup_logging
from devlog.session import Session, SessionStore, Task, TaskStateMachine

log = get_logger("workspace")

T = TypeVar("T")

DEFAULT_ROOT_NAME = "devlog"


def generate_holder_id(clock: Clock | None = None) -> str:
    now = (clock or SystemClock()).now()
    return f"agent-{now:%y%m%d%H%M%S}-{uuid.uuid4().hex[:4]}"


def generate_session_id(holder_id: str, clock: Clock | None = None) -> str:
    now = (clock or SystemClock()).now()
    return f"session-{now:%Y-%m-%dT%H-%M-%S}-{holder_id}-{uuid.uuid4().hex[:4]}"


@dataclass
class WorkspaceStatus:
    """Read-only snapshot for status displays."""

    lock: LockStatus
    session: Session | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "lock": self.lock.to_dict(),
            "session": self.session.to_dict() if self.session else None,
        }


class Workspace:
    """Coordinates one shared devlog workspace for a single agent process."""

    def __init__(
        self,
        root: str | Path,
        config: Config | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Initialize the workspace.

        Args:
            root: Storage root shared by all agents of this workspace.
            config: Engine settings; loaded from the config files when omitted.
            clock: Time source, mainly for tests and replays.
        """
        self._root = Path(root)
        self._config = config or load_config(root=self._root)
        self._clock = clock or SystemClock()

        storage = self._config.storage
        self._locks = LockManager(
            LockStore(self._root, guard_timeout=storage.guard_timeout),
            lease_minutes=self._config.lease.duration_minutes,
            clock=self._clock,
        )
        self._sessions = SessionStore(
            self._root,
            clock=self._clock,
            guard_timeout=storage.guard_timeout,
            idle_threshold_minutes=self._config.tracking.idle_threshold_minutes,
        )
        self._tasks = TaskStateMachine(self._clock)
        self._heartbeats: dict[str, HeartbeatService] = {}
        self._lost: dict[str, LeaseLost] = {}

    @classmethod
    def from_config(cls, config: Config | None = None, clock: Clock | None = None) -> Workspace:
        """Entry point for a process embedding the engine.

        Loads the config files when ``config`` is omitted, installs logging
        handlers from ``config.logging`` (first call only) and opens the
        workspace at ``config.storage.root``, or ``./devlog`` when unset.
        """
        config = config or load_config()
        setup_logging(config.logging)
        root = config.storage.root or os.path.join(os.getcwd(), DEFAULT_ROOT_NAME)
        return cls(root, config=config, clock=clock)

    @property
    def root(self) -> Path:
        return self._root

    @property
    def locks(self) -> LockManager:
        return self._locks

    @property
    def sessions(self) -> SessionStore:
        return self._sessions

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def claim(
        self,
        holder_id: str | None = None,
        focus: str | None = None,
        force: bool = False,
        on_lost: Callable[[LeaseLost], None] | None = None,
        heartbeat: bool = True,
    ) -> Session:
        """Take the workspace lease and open a new live session.

        Args:
            holder_id: Agent identity; generated when omitted.
            focus: What the session is about.
            force: Take the lease even if another holder's is still valid.
            on_lost: Called if the heartbeat later finds the lease taken.
            heartbeat: Start periodic lease renewal.

        Raises:
            LockHeldError: Another holder owns the lease and force is False.
        """
        holder_id = holder_id or generate_holder_id(self._clock)
        session_id = generate_session_id(holder_id, self._clock)

        grant = self._locks.acquire(holder_id, session_id, force=force)
        self._stop_heartbeats_of(holder_id)
        try:
            with self._sessions.locked():
                self._archive_orphan(holder_id)
                session = self._sessions.create(holder_id, session_id, focus=focus)
                self._sessions.save(session)
        except Exception:
            if not grant.renewed:
                self._release_quietly(holder_id)
            raise

        if grant.displaced is not None:
            log.warning(
                "Session %s replaced live session %s of %s",
                session_id,
                grant.displaced.session_id,
                grant.displaced.holder_id,
            )
        if heartbeat:
            self._start_heartbeat(holder_id, session_id, on_lost)
        log.info("Workspace claimed by %s (session %s)", holder_id, session_id)
        return session

    def end(self, session_id: str, reason: str | None = None, release: bool = True) -> Session:
        """Finalize the live session and give up the lease.

        Args:
            session_id: The live session to end.
            reason: Why the session ended, stored on the record.
            release: Release the lease now; False leaves it to lapse.

        Returns:
            The finalized, immutable session record.
        """
        self.stop_heartbeat(session_id)
        with self._sessions.locked():
            self._locks.verify(session_id)
            session = self._load_live(session_id)
            finalized = self._sessions.finalize(session, reason=reason)
        if release:
            try:
                self._locks.release(finalized.holder_id)
            except NoOpReleaseError as e:
                log.warning("Lease already gone when ending %s: %s", session_id, e)
        return finalized

    def status(self) -> WorkspaceStatus:
        return WorkspaceStatus(lock=self._locks.check(), session=self._sessions.load())

    def close(self) -> None:
        """Stop every heartbeat started by this process."""
        for session_id in list(self._heartbeats):
            self.stop_heartbeat(session_id)

    def __enter__(self) -> Workspace:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Tasks and instrumentation
    # ------------------------------------------------------------------

    def start_task(self, session_id: str, title: str) -> Task:
        return self._mutate(session_id, lambda s: self._tasks.start(s, title))

    def pause_task(self, session_id: str, reason: str | None = None) -> Task:
        return self._mutate(session_id, lambda s: self._tasks.pause(s, reason))

    def resume_task(self, session_id: str, task_id: str | None = None) -> Task:
        return self._mutate(session_id, lambda s: self._tasks.resume(s, task_id))

    def iterate_task(self, session_id: str) -> Task:
        return self._mutate(session_id, self._tasks.iterate)

    def complete_task(self, session_id: str) -> Task:
        return self._mutate(session_id, self._tasks.complete)

    def abandon_task(
        self, session_id: str, reason: str | None = None, task_id: str | None = None
    ) -> Task:
        return self._mutate(session_id, lambda s: self._tasks.abandon(s, reason, task_id))

    def record_tool_usage(self, session_id: str, tool_name: str) -> str:
        """Count one tool invocation; returns its activity category."""
        return self._mutate(
            session_id, lambda s: self._sessions.record_tool_usage(s, tool_name)
        )

    # ------------------------------------------------------------------
    # Heartbeats
    # ------------------------------------------------------------------

    def heartbeat_for(self, session_id: str) -> HeartbeatService | None:
        return self._heartbeats.get(session_id)

    def lost_lease(self, session_id: str) -> LeaseLost | None:
        """The refusal that ended this process's heartbeat for ``session_id``, if any."""
        return self._lost.get(session_id)

    def stop_heartbeat(self, session_id: str) -> None:
        service = self._heartbeats.pop(session_id, None)
        if service is not None:
            service.stop()

    def _stop_heartbeats_of(self, holder_id: str) -> None:
        """Stop renewals for earlier sessions of ``holder_id``; its lock now names a new session."""
        for session_id, service in list(self._heartbeats.items()):
            if service.holder_id == holder_id:
                log.debug("Stopping heartbeat of replaced session %s", session_id)
                self.stop_heartbeat(session_id)

    def _start_heartbeat(
        self,
        holder_id: str,
        session_id: str,
        on_lost: Callable[[LeaseLost], None] | None,
    ) -> None:
        def lost(error: LeaseLost) -> None:
            self._heartbeats.pop(session_id, None)
            self._lost[session_id] = error
            if on_lost is not None:
                on_lost(error)

        service = HeartbeatService(
            self._locks,
            interval_seconds=self._config.lease.heartbeat_interval * 60,
            on_lost=lost,
        )
        service.start(holder_id, session_id)
        self._heartbeats[session_id] = service

    # ------------------------------------------------------------------

    def _mutate(self, session_id: str, change: Callable[[Session], T]) -> T:
        """Guarded load, lease check, change, save.

        Nothing is written when ``change`` raises.
        """
        lost = self._lost.get(session_id)
        if isinstance(lost, LockHeldError):
            raise StaleWriteError(session_id, lost.session_id, lost.holder_id)
        if lost is not None:
            raise StaleWriteError(session_id, lost.current_session_id, lost.current_holder_id)
        with self._sessions.locked():
            self._locks.verify(session_id)
            session = self._load_live(session_id)
            result = change(session)
            self._sessions.save(session)
        return result

    def _load_live(self, session_id: str) -> Session:
        session = self._sessions.load()
        if session is None:
            raise SessionNotFoundError(session_id)
        if session.session_id != session_id:
            # The lease says this session owns the workspace but the live
            # slot holds another one; treat the caller as superseded.
            raise StaleWriteError(session_id, session.session_id, session.holder_id)
        return session

    def _archive_orphan(self, new_holder_id: str) -> None:
        """Finalize a live session left behind by a lapsed or displaced holder."""
        orphan = self._sessions.load()
        if orphan is None:
            return
        self._sessions.finalize(orphan, reason=f"superseded by {new_holder_id}")
        log.warning(
            "Archived live session %s of %s before opening a new one",
            orphan.session_id,
            orphan.holder_id,
        )

    def _release_quietly(self, holder_id: str) -> None:
        try:
            self._locks.release(holder_id)
        except NoOpReleaseError:
            pass  # Already displaced
