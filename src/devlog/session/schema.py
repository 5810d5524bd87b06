"""Data schemas for tracked work sessions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from devlog.clock import (
    duration_minutes,
    format_optional,
    format_timestamp,
    parse_optional,
    parse_timestamp,
)

ACTIVITY_CATEGORIES = ("coding", "testing", "research", "planning", "other")


class TaskStatus(Enum):
    """Lifecycle state of a task."""

    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"  # Terminal
    ABANDONED = "abandoned"  # Terminal

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.ABANDONED)


@dataclass
class Pause:
    """An interval during which no task was being worked on."""

    start: datetime
    end: datetime | None = None
    reason: str | None = None
    task_id: str | None = None  # Task that was paused, if any

    @property
    def is_open(self) -> bool:
        return self.end is None

    @property
    def minutes(self) -> float:
        return duration_minutes(self.start, self.end) if self.end else 0.0

    def close(self, when: datetime) -> float:
        """End the interval at ``when`` (never before its start); return its length."""
        self.end = max(when, self.start)
        return self.minutes

    def to_dict(self) -> dict[str, Any]:
        return {
            "start": format_timestamp(self.start),
            "end": format_optional(self.end),
            "reason": self.reason,
            "task_id": self.task_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Pause:
        return cls(
            start=parse_timestamp(data["start"]),
            end=parse_optional(data.get("end")),
            reason=data.get("reason"),
            task_id=data.get("task_id"),
        )


@dataclass
class Timing:
    total_minutes: float = 0.0
    active_minutes: float = 0.0
    pause_minutes: float = 0.0
    pauses: list[Pause] = field(default_factory=list)

    def open_pause(self) -> Pause | None:
        """The most recent pause still open."""
        for pause in reversed(self.pauses):
            if pause.is_open:
                return pause
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_minutes": self.total_minutes,
            "active_minutes": self.active_minutes,
            "pause_minutes": self.pause_minutes,
            "pauses": [p.to_dict() for p in self.pauses],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Timing:
        return cls(
            total_minutes=float(data.get("total_minutes", 0.0)),
            active_minutes=float(data.get("active_minutes", 0.0)),
            pause_minutes=float(data.get("pause_minutes", 0.0)),
            pauses=[Pause.from_dict(p) for p in data.get("pauses", [])],
        )


@dataclass
class Task:
    """A unit of tracked work within a session.

    ``duration_minutes`` is wall time from start to end and includes any
    time the task itself spent paused. Pause-free time is only tracked at
    session level, in ``Timing.active_minutes``.
    """

    id: str
    title: str
    start: datetime
    end: datetime | None = None
    iterations: int = 1
    status: TaskStatus = TaskStatus.ACTIVE
    duration_minutes: float | None = None
    tool_usage: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "start": format_timestamp(self.start),
            "end": format_optional(self.end),
            "iterations": self.iterations,
            "status": self.status.value,
            "duration_minutes": self.duration_minutes,
            "tool_usage": dict(self.tool_usage),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        duration = data.get("duration_minutes")
        return cls(
            id=data["id"],
            title=data["title"],
            start=parse_timestamp(data["start"]),
            end=parse_optional(data.get("end")),
            iterations=int(data.get("iterations", 1)),
            status=TaskStatus(data.get("status", "active")),
            duration_minutes=float(duration) if duration is not None else None,
            tool_usage=dict(data.get("tool_usage") or {}),
        )


def _empty_breakdown() -> dict[str, int]:
    return {category: 0 for category in ACTIVITY_CATEGORIES}


@dataclass
class Session:
    """One continuous span of work by a single holder.

    Mutable only while its holder owns the workspace lock; once
    ``finalized`` it is an immutable historical record.
    """

    session_id: str
    holder_id: str
    start: datetime
    end: datetime | None = None
    focus: str | None = None
    last_activity: datetime | None = None
    timing: Timing = field(default_factory=Timing)
    activity_breakdown: dict[str, int] = field(default_factory=_empty_breakdown)
    tool_usage: dict[str, int] = field(default_factory=dict)
    tasks: list[Task] = field(default_factory=list)
    active_task_id: str | None = None
    finalized: bool = False
    end_reason: str | None = None

    def get_task(self, task_id: str) -> Task | None:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    @property
    def active_task(self) -> Task | None:
        for task in self.tasks:
            if task.status is TaskStatus.ACTIVE:
                return task
        return None

    def tasks_with_status(self, status: TaskStatus) -> list[Task]:
        return [t for t in self.tasks if t.status is status]

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "holder_id": self.holder_id,
            "start": format_timestamp(self.start),
            "end": format_optional(self.end),
            "focus": self.focus,
            "last_activity": format_optional(self.last_activity),
            "timing": self.timing.to_dict(),
            "activity_breakdown": dict(self.activity_breakdown),
            "tool_usage": dict(self.tool_usage),
            "tasks": [t.to_dict() for t in self.tasks],
            "active_task_id": self.active_task_id,
            "finalized": self.finalized,
            "end_reason": self.end_reason,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Session:
        breakdown = _empty_breakdown()
        breakdown.update(data.get("activity_breakdown") or {})
        return cls(
            session_id=data["session_id"],
            holder_id=data["holder_id"],
            start=parse_timestamp(data["start"]),
            end=parse_optional(data.get("end")),
            focus=data.get("focus"),
            last_activity=parse_optional(data.get("last_activity")),
            timing=Timing.from_dict(data.get("timing") or {}),
            activity_breakdown=breakdown,
            tool_usage=dict(data.get("tool_usage") or {}),
            tasks=[Task.from_dict(t) for t in data.get("tasks", [])],
            active_task_id=data.get("active_task_id"),
            finalized=bool(data.get("finalized", False)),
            end_reason=data.get("end_reason"),
        )
