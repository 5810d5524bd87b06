"""Root pytest configuration for all tests."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from devlog.clock import ManualClock
from devlog.config import Config
from devlog.coordination import LockManager, LockStore
from devlog.session import SessionStore, TaskStateMachine
from devlog.workspace import Workspace

START = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(START)


@pytest.fixture
def root(tmp_path: Path) -> Path:
    return tmp_path / "devlog"


@pytest.fixture
def lock_manager(root: Path, clock: ManualClock) -> LockManager:
    return LockManager(LockStore(root), lease_minutes=30, clock=clock)


@pytest.fixture
def session_store(root: Path, clock: ManualClock) -> SessionStore:
    return SessionStore(root, clock=clock)


@pytest.fixture
def machine(clock: ManualClock) -> TaskStateMachine:
    return TaskStateMachine(clock)


@pytest.fixture
def workspace(root: Path, clock: ManualClock):
    """Workspace with default settings and no user/system config files."""
    ws = Workspace(root, config=Config(), clock=clock)
    yield ws
    ws.close()
