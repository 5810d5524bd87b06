"""Session metadata persistence.

Layout under the storage root:
  .mcp/session.yaml      the live session of the workspace (one at most)
  .mcp/session.lock      guard for read-modify-write of the live session
  daily/<date>-<HHhMM>-<session_id>.yaml   finalized, immutable records

Snapshots are written whole and atomically; readers never observe a
partially written session.
"""

from __future__ import annotations

import copy
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from devlog.clock import Clock, SystemClock, duration_minutes
from devlog.errors import SessionFinalizedError, StorageError
from devlog.logging import get_logger
from devlog.persistence import guarded, read_yaml, remove, write_yaml
from devlog.session.schema import Pause, Session

log = get_logger("storage")

LIVE_FILENAME = "session.yaml"
ARCHIVE_DIRNAME = "daily"
AUTO_PAUSE_REASON = "auto_inactive"

# Ordered: the first category whose tools match wins.
TOOL_CATEGORIES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("coding", ("Edit", "Write", "MultiEdit", "NotebookEdit")),
    ("testing", ("Bash", "eslint", "TodoWrite")),
    ("research", ("Read", "Grep", "Search", "WebFetch", "WebSearch", "perplexity")),
    ("planning", ("think", "exit_plan_mode", "devlog_plan", "devlog_whats_next")),
)


def classify_tool(tool_name: str) -> str:
    """Map a tool name to an activity category.

    Exact names are matched before substrings, so ``TodoWrite`` counts as
    testing rather than as a ``Write``.
    """
    for category, tools in TOOL_CATEGORIES:
        if tool_name in tools:
            return category
    for category, tools in TOOL_CATEGORIES:
        if any(tool in tool_name for tool in tools):
            return category
    return "other"


@dataclass
class ArchivedRecord:
    """A finalized session file, for listing without loading everything."""

    path: Path
    session_id: str


class SessionStore:
    """Durable record of session timing, tasks and tool usage."""

    def __init__(
        self,
        root: str | Path,
        *,
        clock: Clock | None = None,
        guard_timeout: float = 10.0,
        idle_threshold_minutes: float = 5.0,
    ) -> None:
        """Initialize the store.

        Args:
            root: Storage root shared by all agents of the workspace.
            clock: Time source.
            guard_timeout: Seconds to wait for the live-session guard.
            idle_threshold_minutes: Gap between activities that counts as
                an automatic pause; 0 disables idle detection.
        """
        self._root = Path(root)
        self._live_path = self._root / ".mcp" / LIVE_FILENAME
        self._guard_path = self._live_path.with_suffix(".lock")
        self._archive_dir = self._root / ARCHIVE_DIRNAME
        self._clock = clock or SystemClock()
        self._guard_timeout = guard_timeout
        self._idle_threshold = idle_threshold_minutes

    @property
    def live_path(self) -> Path:
        return self._live_path

    @property
    def archive_dir(self) -> Path:
        return self._archive_dir

    @contextmanager
    def locked(self) -> Iterator[SessionStore]:
        """Exclusive guard for load-mutate-save of the live session."""
        with guarded(self._guard_path, self._guard_timeout):
            yield self

    # ------------------------------------------------------------------
    # Live session
    # ------------------------------------------------------------------

    def create(self, holder_id: str, session_id: str, focus: str | None = None) -> Session:
        """Build a fresh session starting now. Not persisted until ``save``."""
        now = self._clock.now()
        return Session(
            session_id=session_id,
            holder_id=holder_id,
            start=now,
            focus=focus,
            last_activity=now,
        )

    def load(self, handle: str | None = None) -> Session | None:
        """Load a session.

        Args:
            handle: None for the live session; otherwise a session id, looked
                up in the live slot first and then in the archive.
        """
        live = self._read(self._live_path)
        if handle is None or (live is not None and live.session_id == handle):
            return live
        for record in self.list_records():
            if record.session_id == handle:
                return self.load_record(record.path)
        return None

    def save(self, session: Session) -> None:
        """Persist the full snapshot as the live session."""
        if session.finalized:
            raise SessionFinalizedError(session.session_id)
        write_yaml(self._live_path, session.to_dict())
        log.debug("Saved session %s", session.session_id)

    def clear(self) -> bool:
        """Empty the live slot."""
        return remove(self._live_path)

    def record_tool_usage(self, session: Session, tool_name: str) -> str:
        """Count one tool invocation against the session and its active task.

        Also records an automatic pause when the session sat idle longer
        than the idle threshold.

        Returns:
            The activity category the tool was counted under.
        """
        if session.finalized:
            raise SessionFinalizedError(session.session_id)
        now = self._clock.now()
        self._detect_idle(session, now)

        session.tool_usage[tool_name] = session.tool_usage.get(tool_name, 0) + 1
        category = classify_tool(tool_name)
        session.activity_breakdown[category] = session.activity_breakdown.get(category, 0) + 1
        if session.active_task_id:
            task = session.get_task(session.active_task_id)
            if task is not None:
                task.tool_usage[tool_name] = task.tool_usage.get(tool_name, 0) + 1
        session.last_activity = now
        return category

    def _detect_idle(self, session: Session, now: datetime) -> None:
        if not self._idle_threshold or session.last_activity is None:
            return
        if session.timing.open_pause() is not None:
            return
        gap = duration_minutes(session.last_activity, now)
        if gap <= self._idle_threshold:
            return
        pause = Pause(start=session.last_activity, reason=AUTO_PAUSE_REASON)
        session.timing.pause_minutes = round(session.timing.pause_minutes + pause.close(now), 2)
        session.timing.pauses.append(pause)
        log.debug("Session %s idle for %.1f minutes", session.session_id, gap)

    # ------------------------------------------------------------------
    # Finalized records
    # ------------------------------------------------------------------

    def finalize(self, session: Session, reason: str | None = None) -> Session:
        """Close the session and store it as an immutable record.

        Closes any open pause, computes the totals, writes the record to the
        archive (write-once) and clears the live slot if it held this session.
        The argument is left untouched; the finalized copy is returned.
        """
        if session.finalized:
            raise SessionFinalizedError(session.session_id)
        session = copy.deepcopy(session)
        now = self._clock.now()

        open_pause = session.timing.open_pause()
        if open_pause is not None:
            session.timing.pause_minutes = round(
                session.timing.pause_minutes + open_pause.close(now), 2
            )

        session.end = now
        timing = session.timing
        timing.total_minutes = duration_minutes(session.start, now)
        timing.pause_minutes = min(timing.pause_minutes, timing.total_minutes)
        timing.active_minutes = round(max(0.0, timing.total_minutes - timing.pause_minutes), 2)
        session.end_reason = reason
        session.finalized = True

        path = self._archive_dir / self._record_name(session)
        write_yaml(path, session.to_dict(), exclusive=True)

        live = self._read(self._live_path)
        if live is not None and live.session_id == session.session_id:
            self.clear()
        log.info(
            "Finalized session %s: %.2f min total, %.2f active",
            session.session_id,
            timing.total_minutes,
            timing.active_minutes,
        )
        return session

    def list_records(self) -> list[ArchivedRecord]:
        """Finalized records, oldest first."""
        if not self._archive_dir.exists():
            return []
        records = []
        for path in sorted(self._archive_dir.glob("*.yaml")):
            data = read_yaml(path)
            if data and "session_id" in data:
                records.append(ArchivedRecord(path=path, session_id=data["session_id"]))
        return records

    def load_record(self, path: Path) -> Session | None:
        return self._read(path)

    # ------------------------------------------------------------------

    def _record_name(self, session: Session) -> str:
        end = session.end or self._clock.now()
        return f"{end:%Y-%m-%d}-{end:%Hh%M}-{session.session_id}.yaml"

    def _read(self, path: Path) -> Session | None:
        data = read_yaml(path)
        if data is None:
            return None
        try:
            return Session.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise StorageError("read", str(path), f"malformed session record: {e}") from e
