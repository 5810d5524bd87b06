"""Configuration loading.

Handles YAML parsing, deep merging of the system/user/project layers,
environment overrides, and conversion to the typed Config dataclass.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from devlog.config.paths import get_config_paths
from devlog.config.schema import (
    Config,
    LeaseConfig,
    LoggingConfig,
    StorageConfig,
    TrackingConfig,
)

_log = logging.getLogger("devlog.config")

_KNOWN_SECTIONS = {"lease", "storage", "tracking", "logging"}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML mapping, returning an empty dict if missing or invalid."""
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        _log.warning("Invalid YAML in %s: %s", path, e)
        return {}
    except PermissionError:
        _log.debug("Permission denied reading %s", path)
        return {}
    except OSError as e:
        _log.warning("Error reading %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge ``override`` into a copy of ``base``.

    Nested mappings merge recursively, lists and scalars are replaced, and a
    ``None`` in ``override`` leaves the base value alone.
    """
    merged = dict(base)
    for key, value in override.items():
        if value is None:
            continue
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def env_overrides() -> dict[str, Any]:
    """Config values taken from DEVLOG_* environment variables."""
    overrides: dict[str, Any] = {}

    root = os.environ.get("DEVLOG_PATH")
    if root:
        overrides.setdefault("storage", {})["root"] = root

    log_path = os.environ.get("DEVLOG_LOG")
    if log_path:
        overrides.setdefault("logging", {})["file"] = log_path

    lease = os.environ.get("DEVLOG_LEASE_MINUTES")
    if lease:
        try:
            overrides.setdefault("lease", {})["duration_minutes"] = float(lease)
        except ValueError:
            _log.warning("Ignoring non-numeric DEVLOG_LEASE_MINUTES=%r", lease)

    return overrides


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name)
    return value if isinstance(value, dict) else {}


def dict_to_config(data: dict[str, Any]) -> Config:
    """Convert a merged mapping to a validated Config."""
    lease_data = _section(data, "lease")
    storage_data = _section(data, "storage")
    tracking_data = _section(data, "tracking")
    log_data = _section(data, "logging")

    interval = lease_data.get("heartbeat_interval_minutes")
    config = Config(
        lease=LeaseConfig(
            duration_minutes=float(lease_data.get("duration_minutes", 30.0)),
            heartbeat_interval_minutes=float(interval) if interval is not None else None,
        ),
        storage=StorageConfig(
            root=storage_data.get("root"),
            guard_timeout=float(storage_data.get("guard_timeout", 10.0)),
        ),
        tracking=TrackingConfig(
            idle_threshold_minutes=float(tracking_data.get("idle_threshold_minutes", 5.0)),
        ),
        logging=LoggingConfig(
            level=log_data.get("level"),
            verbose=log_data.get("verbose"),
            file=log_data.get("file"),
        ),
        extra={k: v for k, v in data.items() if k not in _KNOWN_SECTIONS},
    )
    return config.validate()


def load_config(
    root: str | os.PathLike[str] | None = None,
    overrides: dict[str, Any] | None = None,
) -> Config:
    """Load and merge config from all sources.

    Priority order (highest first): explicit ``overrides``, environment
    variables, project config, user config, system config.

    Args:
        root: Storage root whose ``.devlog/config.yaml`` is the project layer.
        overrides: Values supplied programmatically by the embedding process.
    """
    merged: dict[str, Any] = {}
    for path in get_config_paths(root):
        layer = load_yaml_file(path)
        if layer:
            _log.debug("Loaded config from %s", path)
            merged = deep_merge(merged, layer)

    merged = deep_merge(merged, env_overrides())
    if overrides:
        merged = deep_merge(merged, overrides)
    return dict_to_config(merged)
