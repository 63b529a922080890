"""
taskweave — caller-owned graph stores

File: src/taskweave/persistence/graph_store.py
Last updated: 2026-10-19

Purpose
- Hold the canonical, ordered task snapshot in a single named slot.
- Expose read / replace / functional update to the engine.

Functional requirements
- A replace is one atomic swap: readers see the old snapshot or the new one.
- Every successful replace bumps ``version``; a writer may pass the version it
  read as ``expected_version`` and gets ``ConcurrentModificationError`` when
  another write landed in between.

Non-functional requirements
- No task-graph semantics here: stores never validate or normalize.
"""

from __future__ import annotations

import json
import threading
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Protocol, runtime_checkable

from taskweave.constants import TASK_GRAPH_SLOT
from taskweave.domain.errors import ConcurrentModificationError
from taskweave.domain.models import TaskNode, snapshot_from_payload, snapshot_to_payload
from taskweave.utils.fs import PathLike, atomic_write_text

Snapshot = tuple[TaskNode, ...]
SnapshotUpdater = Callable[[Snapshot], Iterable[TaskNode]]


class GraphStoreError(RuntimeError):
    """Raised when a persisted snapshot cannot be read."""


@runtime_checkable
class GraphStore(Protocol):
    slot: str

    def read(self) -> tuple[Snapshot, int]:
        """Return the current snapshot and its version."""
        ...

    def replace(self, tasks: Iterable[TaskNode], *, expected_version: int | None = None) -> int:
        """Swap in a new snapshot and return the new version."""
        ...

    def update(self, updater: SnapshotUpdater) -> Snapshot:
        """Apply ``updater`` to the current snapshot and store the result."""
        ...


class InMemoryGraphStore:
    """Process-local store; the default for embedding the engine in a host."""

    __slots__ = ("slot", "_lock", "_tasks", "_version")

    def __init__(self, initial: Iterable[TaskNode] = (), *, slot: str = TASK_GRAPH_SLOT) -> None:
        self.slot = slot
        self._lock = threading.Lock()
        self._tasks: Snapshot = tuple(initial)
        self._version = 0

    @property
    def version(self) -> int:
        with self._lock:
            return self._version

    def read(self) -> tuple[Snapshot, int]:
        with self._lock:
            return self._tasks, self._version

    def replace(self, tasks: Iterable[TaskNode], *, expected_version: int | None = None) -> int:
        snapshot = tuple(tasks)
        with self._lock:
            if expected_version is not None and expected_version != self._version:
                raise ConcurrentModificationError(expected_version, self._version)
            self._tasks = snapshot
            self._version += 1
            return self._version

    def update(self, updater: SnapshotUpdater) -> Snapshot:
        with self._lock:
            self._tasks = tuple(updater(self._tasks))
            self._version += 1
            return self._tasks


class JsonFileGraphStore:
    """Store backed by one canonical JSON file, used by the CLI between runs."""

    __slots__ = ("slot", "path", "_lock")

    def __init__(self, path: PathLike, *, slot: str = TASK_GRAPH_SLOT) -> None:
        self.slot = slot
        self.path = Path(path)
        self._lock = threading.Lock()

    def read(self) -> tuple[Snapshot, int]:
        with self._lock:
            return self._load()

    def replace(self, tasks: Iterable[TaskNode], *, expected_version: int | None = None) -> int:
        snapshot = tuple(tasks)
        with self._lock:
            _, current = self._load()
            if expected_version is not None and expected_version != current:
                raise ConcurrentModificationError(expected_version, current)
            return self._write(snapshot, current + 1)

    def update(self, updater: SnapshotUpdater) -> Snapshot:
        with self._lock:
            tasks, current = self._load()
            snapshot = tuple(updater(tasks))
            self._write(snapshot, current + 1)
            return snapshot

    def _load(self) -> tuple[Snapshot, int]:
        if not self.path.exists():
            return (), 0
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise GraphStoreError(f"unable to read task graph from {self.path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise GraphStoreError(f"task graph file root must be an object: {self.path}")

        slots = payload.get("slots", {})
        if not isinstance(slots, dict):
            raise GraphStoreError(f"'slots' must be an object: {self.path}")
        entry = slots.get(self.slot)
        if entry is None:
            return (), 0
        if not isinstance(entry, dict):
            raise GraphStoreError(f"slot {self.slot!r} must be an object: {self.path}")

        version = entry.get("version", 0)
        if isinstance(version, bool) or not isinstance(version, int) or version < 0:
            raise GraphStoreError(f"slot {self.slot!r} has an invalid version: {self.path}")
        try:
            tasks = snapshot_from_payload(entry)
        except ValueError as exc:
            raise GraphStoreError(f"invalid task graph in {self.path}: {exc}") from exc
        return tasks, version

    def _write(self, tasks: Snapshot, version: int) -> int:
        payload: dict[str, object] = {}
        slots: dict[str, object] = {}
        if self.path.exists():
            try:
                existing = json.loads(self.path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError):
                existing = None
            if isinstance(existing, dict) and isinstance(existing.get("slots"), dict):
                payload = existing
                slots = existing["slots"]

        payload["slots"] = slots
        slots[self.slot] = {"version": version, **snapshot_to_payload(tasks)}
        atomic_write_text(
            self.path,
            json.dumps(payload, sort_keys=True, indent=2, ensure_ascii=False) + "\n",
        )
        return version


__all__ = [
    "GraphStore",
    "GraphStoreError",
    "InMemoryGraphStore",
    "JsonFileGraphStore",
    "Snapshot",
    "SnapshotUpdater",
]
