"""Persistence for the workspace lock record."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from devlog.coordination.schema import Lock
from devlog.errors import StorageError
from devlog.persistence import guarded, read_yaml, remove, write_yaml

LOCK_FILENAME = "lock.yaml"


class LockStore:
    """One lock record per workspace, at ``<root>/.mcp/lock.yaml``.

    ``transaction()`` holds an exclusive cross-process guard so that a
    caller's read and the write that depends on it cannot interleave with
    another process doing the same.
    """

    def __init__(self, root: str | Path, guard_timeout: float = 10.0) -> None:
        self._dir = Path(root) / ".mcp"
        self._path = self._dir / LOCK_FILENAME
        self._guard_path = self._path.with_suffix(".lock")
        self._guard_timeout = guard_timeout

    @property
    def path(self) -> Path:
        return self._path

    @contextmanager
    def transaction(self) -> Iterator[LockStore]:
        with guarded(self._guard_path, self._guard_timeout):
            yield self

    def read(self) -> Lock | None:
        data = read_yaml(self._path)
        if data is None:
            return None
        try:
            return Lock.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise StorageError("read", str(self._path), f"malformed lock record: {e}") from e

    def write(self, lock: Lock) -> None:
        write_yaml(self._path, lock.to_dict())

    def delete(self) -> bool:
        return remove(self._path)
