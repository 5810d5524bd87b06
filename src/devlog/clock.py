"""Time sources and duration arithmetic.

All timestamps handled by the engine are timezone-aware UTC datetimes and
are persisted as ISO-8601 strings. Durations are expressed in minutes and
always recomputed from two timestamps rather than accumulated tick by tick.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Clock(Protocol):
    """Anything that can tell the current UTC time."""

    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock."""

    def now(self) -> datetime:
        return utc_now()


class ManualClock:
    """A clock that only moves when told to.

    Handy for replaying sessions and for deterministic tests.
    """

    def __init__(self, start: datetime | None = None) -> None:
        self._now = ensure_utc(start) if start else utc_now()

    def now(self) -> datetime:
        return self._now

    def advance(self, *, minutes: float = 0, seconds: float = 0) -> datetime:
        self._now = self._now + timedelta(minutes=minutes, seconds=seconds)
        return self._now

    def set(self, when: datetime) -> None:
        self._now = ensure_utc(when)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse a persisted timestamp.

    Accepts datetimes too, since YAML loaders may already have converted an
    unquoted timestamp.
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    return ensure_utc(datetime.fromisoformat(value))


def parse_optional(value: str | datetime | None) -> datetime | None:
    if value is None:
        return None
    return parse_timestamp(value)


def format_timestamp(value: datetime) -> str:
    return ensure_utc(value).isoformat()


def format_optional(value: datetime | None) -> str | None:
    return format_timestamp(value) if value is not None else None


def duration_minutes(start: datetime, end: datetime) -> float:
    """Minutes between two instants, clamped at zero, two decimals."""
    seconds = (ensure_utc(end) - ensure_utc(start)).total_seconds()
    if seconds <= 0:
        return 0.0
    return round(seconds / 60, 2)


def format_duration(minutes: float) -> str:
    """Render minutes as ``"1h 5m"``, ``"2h"`` or ``"45m"``."""
    total = int(round(minutes))
    hours, mins = divmod(total, 60)
    if hours == 0:
        return f"{mins}m"
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}m"
