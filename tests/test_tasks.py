"""Tests for the per-task state machine."""

from __future__ import annotations

import pytest

from devlog.clock import ManualClock
from devlog.errors import NoActiveTaskError, NoPausedTaskError, SessionFinalizedError
from devlog.session import Session, SessionStore, TaskStateMachine, TaskStatus
from devlog.session.tasks import MANUAL_PAUSE_REASON


@pytest.fixture
def session(session_store: SessionStore) -> Session:
    return session_store.create("agent-a", "s1")


class TestStart:
    def test_creates_active_task(
        self, machine: TaskStateMachine, session: Session, clock: ManualClock
    ) -> None:
        task = machine.start(session, "  Write changelog  ")

        assert task.title == "Write changelog"
        assert task.status is TaskStatus.ACTIVE
        assert task.iterations == 1
        assert task.start == clock.now()
        assert task.id.startswith("task-")
        assert session.active_task_id == task.id
        assert session.active_task is task

    def test_title_required(self, machine: TaskStateMachine, session: Session) -> None:
        with pytest.raises(ValueError):
            machine.start(session, "   ")
        assert session.tasks == []

    def test_pauses_current_task(self, machine: TaskStateMachine, session: Session) -> None:
        first = machine.start(session, "First")
        second = machine.start(session, "Second")

        assert first.status is TaskStatus.PAUSED
        assert second.status is TaskStatus.ACTIVE
        assert session.tasks_with_status(TaskStatus.ACTIVE) == [second]

    def test_closes_open_pause(
        self, machine: TaskStateMachine, session: Session, clock: ManualClock
    ) -> None:
        machine.start(session, "First")
        machine.pause(session)
        clock.advance(minutes=4)

        machine.start(session, "Second")

        assert session.timing.open_pause() is None
        assert session.timing.pause_minutes == 4.0


class TestPauseResume:
    def test_pause_opens_interval(
        self, machine: TaskStateMachine, session: Session, clock: ManualClock
    ) -> None:
        task = machine.start(session, "Fix bug")
        clock.advance(minutes=2)

        machine.pause(session)

        assert task.status is TaskStatus.PAUSED
        assert session.active_task_id is None
        pause = session.timing.pauses[-1]
        assert pause.is_open
        assert pause.start == clock.now()
        assert pause.reason == MANUAL_PAUSE_REASON
        assert pause.task_id == task.id

    def test_pause_without_active_task(self, machine: TaskStateMachine, session: Session) -> None:
        with pytest.raises(NoActiveTaskError) as exc_info:
            machine.pause(session)
        assert exc_info.value.operation == "pause"
        assert session.timing.pauses == []

    def test_resume_closes_interval(
        self, machine: TaskStateMachine, session: Session, clock: ManualClock
    ) -> None:
        task = machine.start(session, "Fix bug")
        machine.pause(session, "meeting")
        clock.advance(minutes=7)

        resumed = machine.resume(session)

        assert resumed is task
        assert task.status is TaskStatus.ACTIVE
        assert session.active_task_id == task.id
        assert session.timing.pauses[-1].end == clock.now()
        assert session.timing.pause_minutes == 7.0

    def test_resume_without_paused_task(self, machine: TaskStateMachine, session: Session) -> None:
        machine.start(session, "Fix bug")
        with pytest.raises(NoPausedTaskError):
            machine.resume(session)

    def test_resume_most_recently_paused(
        self, machine: TaskStateMachine, session: Session
    ) -> None:
        first = machine.start(session, "First")
        machine.pause(session)
        machine.resume(session)
        second = machine.start(session, "Second")  # first is paused by start
        machine.pause(session)

        assert machine.resume(session) is second
        assert first.status is TaskStatus.PAUSED

    def test_resume_specific_task_pauses_current(
        self, machine: TaskStateMachine, session: Session
    ) -> None:
        first = machine.start(session, "First")
        second = machine.start(session, "Second")

        machine.resume(session, first.id)

        assert first.status is TaskStatus.ACTIVE
        assert second.status is TaskStatus.PAUSED
        assert session.active_task_id == first.id

    def test_resume_unknown_task(self, machine: TaskStateMachine, session: Session) -> None:
        machine.start(session, "First")
        machine.pause(session)
        with pytest.raises(NoPausedTaskError) as exc_info:
            machine.resume(session, "task-missing")
        assert exc_info.value.task_id == "task-missing"


class TestIterateComplete:
    def test_iterate_counts(self, machine: TaskStateMachine, session: Session) -> None:
        machine.start(session, "Tune parser")
        machine.iterate(session)
        task = machine.iterate(session)
        assert task.iterations == 3

    def test_iterate_requires_active_task(
        self, machine: TaskStateMachine, session: Session
    ) -> None:
        with pytest.raises(NoActiveTaskError):
            machine.iterate(session)

    def test_complete_records_wall_time(
        self, machine: TaskStateMachine, session: Session, clock: ManualClock
    ) -> None:
        task = machine.start(session, "Write changelog")
        clock.advance(minutes=10)
        machine.pause(session)
        clock.advance(minutes=5)
        machine.resume(session)
        clock.advance(minutes=10)

        machine.complete(session)

        assert task.status is TaskStatus.COMPLETED
        assert task.end == clock.now()
        assert task.duration_minutes == 25.0
        assert session.active_task_id is None

    def test_complete_requires_active_task(
        self, machine: TaskStateMachine, session: Session
    ) -> None:
        machine.start(session, "Write changelog")
        machine.pause(session)
        with pytest.raises(NoActiveTaskError) as exc_info:
            machine.complete(session)
        assert exc_info.value.operation == "complete"

    def test_completed_task_cannot_be_resumed(
        self, machine: TaskStateMachine, session: Session
    ) -> None:
        task = machine.start(session, "Write changelog")
        machine.complete(session)
        with pytest.raises(NoPausedTaskError):
            machine.resume(session, task.id)


class TestAbandon:
    def test_abandon_active(
        self, machine: TaskStateMachine, session: Session, clock: ManualClock
    ) -> None:
        task = machine.start(session, "Spike")
        clock.advance(minutes=3)

        machine.abandon(session, reason="dead end")

        assert task.status is TaskStatus.ABANDONED
        assert task.duration_minutes == 3.0
        assert session.active_task_id is None

    def test_abandon_falls_back_to_paused(
        self, machine: TaskStateMachine, session: Session
    ) -> None:
        task = machine.start(session, "Spike")
        machine.pause(session)
        assert machine.abandon(session) is task
        assert task.status is TaskStatus.ABANDONED

    def test_abandon_nothing(self, machine: TaskStateMachine, session: Session) -> None:
        with pytest.raises(NoActiveTaskError):
            machine.abandon(session)

    def test_abandon_terminal_task(self, machine: TaskStateMachine, session: Session) -> None:
        task = machine.start(session, "Spike")
        machine.complete(session)
        with pytest.raises(NoActiveTaskError):
            machine.abandon(session, task_id=task.id)


class TestFinalizedSession:
    def test_every_command_refused(
        self, machine: TaskStateMachine, session_store: SessionStore
    ) -> None:
        record = session_store.finalize(session_store.create("agent-a", "s1"))

        for command in (
            lambda: machine.start(record, "Late"),
            lambda: machine.pause(record),
            lambda: machine.resume(record),
            lambda: machine.iterate(record),
            lambda: machine.complete(record),
            lambda: machine.abandon(record),
        ):
            with pytest.raises(SessionFinalizedError):
                command()
        assert record.tasks == []
