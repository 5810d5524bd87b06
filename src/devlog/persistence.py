"""YAML record files shared by the lock and session stores.

Writes go to a temp file in the same directory and are swapped in with
``os.replace``, so readers see either the old or the new record and never a
partial one. Read-modify-write sequences run under a ``filelock`` guard on a
sibling ``.lock`` file, which is what serializes competing processes.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import yaml
from filelock import FileLock, Timeout

from devlog.errors import StorageError
from devlog.logging import get_logger

log = get_logger("persistence")


def read_yaml(path: Path) -> dict[str, Any] | None:
    """Read a YAML mapping, or None if the file does not exist.

    Raises:
        StorageError: The file exists but cannot be read or parsed.
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        return None
    except (OSError, yaml.YAMLError) as e:
        raise StorageError("read", str(path), str(e)) from e
    if data is None:
        return None
    if not isinstance(data, dict):
        raise StorageError("read", str(path), "record is not a mapping")
    return data


def write_yaml(path: Path, data: dict[str, Any], *, exclusive: bool = False) -> Path:
    """Atomically write ``data`` to ``path``.

    Args:
        path: Destination file.
        data: Mapping to serialize.
        exclusive: Fail instead of replacing an existing file (write-once records).

    Raises:
        StorageError: Nothing was written.
    """
    temp_path = path.with_name(f"{path.name}.tmp.{uuid.uuid4().hex[:8]}")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(temp_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, default_flow_style=False, allow_unicode=True, sort_keys=False)
            f.flush()
            os.fsync(f.fileno())
        if exclusive:
            # link() refuses to overwrite, unlike replace()
            os.link(temp_path, path)
            temp_path.unlink()
        else:
            os.replace(temp_path, path)
    except OSError as e:
        if temp_path.exists():
            temp_path.unlink()
        raise StorageError("write", str(path), str(e)) from e
    log.debug("Wrote %s", path)
    return path


def remove(path: Path) -> bool:
    """Delete a record file. Returns False if it was already gone."""
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as e:
        raise StorageError("remove", str(path), str(e)) from e
    return True


@contextmanager
def guarded(lock_path: Path, timeout: float) -> Iterator[None]:
    """Hold the cross-process guard for ``lock_path``.

    Raises:
        StorageError: The guard could not be taken within ``timeout`` seconds.
    """
    try:
        lock_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageError("lock", str(lock_path), str(e)) from e
    guard = FileLock(lock_path, timeout=timeout)
    try:
        guard.acquire()
    except Timeout as e:
        raise StorageError("lock", str(lock_path), f"timed out after {timeout}s") from e
    except OSError as e:
        raise StorageError("lock", str(lock_path), str(e)) from e
    try:
        yield
    finally:
        guard.release()
