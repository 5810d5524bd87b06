"""Per-task lifecycle within a session.

    start ──► active ◄──► paused
                │            │
                ▼            ▼
           completed     abandoned

At most one task is active at a time. ``completed`` and ``abandoned`` are
terminal. Every guard is checked before anything is touched, so a refused
command leaves the session exactly as it was.

Task ``duration_minutes`` is raw wall time from start to end, including
any stretch the task itself spent paused. Pause-free time is a session
figure (``Timing.active_minutes``) and is not derived per task.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from devlog.clock import Clock, SystemClock, duration_minutes
from devlog.errors import NoActiveTaskError, NoPausedTaskError, SessionFinalizedError
from devlog.logging import get_logger
from devlog.session.schema import Pause, Session, Task, TaskStatus

log = get_logger("tasks")

MANUAL_PAUSE_REASON = "manual_pause"


def generate_task_id() -> str:
    return f"task-{uuid.uuid4().hex[:8]}"


class TaskStateMachine:
    """Applies task commands to a Session value."""

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()

    def start(self, session: Session, title: str) -> Task:
        """Create a new active task, pausing the current one if any."""
        self._check_mutable(session)
        title = title.strip() if title else ""
        if not title:
            raise ValueError("Task title is required")

        now = self._clock.now()
        self._pause_current(session)
        self._close_open_pause(session, now)

        task = Task(id=generate_task_id(), title=title, start=now)
        session.tasks.append(task)
        session.active_task_id = task.id
        session.last_activity = now
        log.debug("Task %s started: %s", task.id, title)
        return task

    def pause(self, session: Session, reason: str | None = None) -> Task:
        """Pause the active task and open a pause interval."""
        self._check_mutable(session)
        task = self._require_active(session, "pause")

        now = self._clock.now()
        task.status = TaskStatus.PAUSED
        session.active_task_id = None
        session.timing.pauses.append(
            Pause(start=now, reason=reason or MANUAL_PAUSE_REASON, task_id=task.id)
        )
        session.last_activity = now
        log.debug("Task %s paused", task.id)
        return task

    def resume(self, session: Session, task_id: str | None = None) -> Task:
        """Reactivate a paused task and close the open pause interval.

        Args:
            session: Session to mutate.
            task_id: Task to resume; defaults to the most recently paused one.
        """
        self._check_mutable(session)
        task = self._find_paused(session, task_id)

        now = self._clock.now()
        self._pause_current(session)
        self._close_open_pause(session, now)
        task.status = TaskStatus.ACTIVE
        session.active_task_id = task.id
        session.last_activity = now
        log.debug("Task %s resumed", task.id)
        return task

    def iterate(self, session: Session) -> Task:
        """Count another attempt at the active task."""
        self._check_mutable(session)
        task = self._require_active(session, "iterate")
        task.iterations += 1
        session.last_activity = self._clock.now()
        return task

    def complete(self, session: Session) -> Task:
        self._check_mutable(session)
        task = self._require_active(session, "complete")
        self._finish(session, task, TaskStatus.COMPLETED)
        return task

    def abandon(
        self, session: Session, reason: str | None = None, task_id: str | None = None
    ) -> Task:
        """Give up on a task.

        Without ``task_id`` the active task is abandoned, or failing that the
        most recently paused one.
        """
        self._check_mutable(session)
        if task_id is not None:
            task = session.get_task(task_id)
            if task is None or task.status.is_terminal:
                raise NoActiveTaskError("abandon")
        else:
            task = session.active_task or self._latest_paused(session)
            if task is None:
                raise NoActiveTaskError("abandon")
        self._finish(session, task, TaskStatus.ABANDONED)
        if reason:
            log.debug("Task %s abandoned: %s", task.id, reason)
        return task

    # ------------------------------------------------------------------

    def _finish(self, session: Session, task: Task, status: TaskStatus) -> None:
        now = self._clock.now()
        task.status = status
        task.end = now
        task.duration_minutes = duration_minutes(task.start, now)
        if session.active_task_id == task.id:
            session.active_task_id = None
        session.last_activity = now
        log.debug("Task %s %s after %.2f min", task.id, status.value, task.duration_minutes)

    def _check_mutable(self, session: Session) -> None:
        if session.finalized:
            raise SessionFinalizedError(session.session_id)

    def _require_active(self, session: Session, operation: str) -> Task:
        task = session.active_task
        if task is None:
            raise NoActiveTaskError(operation)
        return task

    def _find_paused(self, session: Session, task_id: str | None) -> Task:
        if task_id is not None:
            task = session.get_task(task_id)
            if task is None or task.status is not TaskStatus.PAUSED:
                raise NoPausedTaskError(task_id)
            return task
        task = self._latest_paused(session)
        if task is None:
            raise NoPausedTaskError()
        return task

    def _latest_paused(self, session: Session) -> Task | None:
        """The paused task whose pause interval opened last."""
        paused = session.tasks_with_status(TaskStatus.PAUSED)
        if not paused:
            return None
        for pause in reversed(session.timing.pauses):
            for task in paused:
                if task.id == pause.task_id:
                    return task
        return paused[-1]

    def _pause_current(self, session: Session) -> None:
        current = session.active_task
        if current is not None:
            current.status = TaskStatus.PAUSED
            log.debug("Task %s auto-paused", current.id)

    def _close_open_pause(self, session: Session, now: datetime) -> None:
        pause = session.timing.open_pause()
        if pause is not None:
            minutes = pause.close(now)
            session.timing.pause_minutes = round(session.timing.pause_minutes + minutes, 2)
