"""Configuration schema dataclasses for devlog.

All fields have defaults so partial configs merge cleanly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class LeaseConfig:
    """Workspace lease timing.

    Example config.yaml:
        lease:
          duration_minutes: 30
          heartbeat_interval_minutes: 10
    """

    duration_minutes: float = 30.0
    heartbeat_interval_minutes: float | None = None  # Default: a third of the lease

    @property
    def heartbeat_interval(self) -> float:
        """Renewal interval in minutes."""
        if self.heartbeat_interval_minutes is not None:
            return self.heartbeat_interval_minutes
        return self.duration_minutes / 3


@dataclass
class StorageConfig:
    """Where the lock and session records live."""

    root: str | None = None  # Default: ./devlog
    guard_timeout: float = 10.0  # Seconds to wait for a store guard


@dataclass
class TrackingConfig:
    """Tool usage and idle detection."""

    idle_threshold_minutes: float = 5.0  # 0 disables auto pauses


@dataclass
class LoggingConfig:
    level: str | None = None  # DEBUG, INFO, WARNING, ERROR
    verbose: int | None = None  # 0-4, overrides level
    file: str | None = None


@dataclass
class Config:
    """Root configuration object."""

    lease: LeaseConfig = field(default_factory=LeaseConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    tracking: TrackingConfig = field(default_factory=TrackingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Unknown top-level sections, kept for collaborators
    extra: dict[str, Any] = field(default_factory=dict)

    def validate(self) -> Config:
        if self.lease.duration_minutes <= 0:
            raise ValueError("lease.duration_minutes must be positive")
        if self.lease.heartbeat_interval <= 0:
            raise ValueError("lease.heartbeat_interval_minutes must be positive")
        if self.lease.heartbeat_interval >= self.lease.duration_minutes:
            raise ValueError("lease.heartbeat_interval_minutes must be shorter than the lease")
        if self.storage.guard_timeout <= 0:
            raise ValueError("storage.guard_timeout must be positive")
        if self.tracking.idle_threshold_minutes < 0:
            raise ValueError("tracking.idle_threshold_minutes cannot be negative")
        return self
