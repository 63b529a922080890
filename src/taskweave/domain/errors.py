"""Typed failures raised by pure task-graph operations.

Every error here is an expected, recoverable outcome. The command layer in
``taskweave.control_plane.engine`` turns them into ``success=False`` results.
"""

from __future__ import annotations

from collections.abc import Sequence


class TaskGraphError(Exception):
    """Base class for expected task-graph failures."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class GraphValidationError(TaskGraphError):
    """A candidate graph failed referential or acyclicity checks."""

    errors: tuple[str, ...]

    def __init__(self, errors: Sequence[str]) -> None:
        self.errors = tuple(errors)
        super().__init__(f"Invalid task graph: {'; '.join(self.errors)}")


class TaskNotFoundError(TaskGraphError):
    def __init__(self, task_id: str, known_ids: Sequence[str]) -> None:
        self.task_id = task_id
        self.known_ids = tuple(known_ids)
        super().__init__(
            f'Task "{task_id}" not found. Available IDs: {", ".join(self.known_ids)}'
        )


class InvalidTransitionError(TaskGraphError):
    """A status change or answer is not allowed from the task's current state."""

    def __init__(self, task_id: str, message: str) -> None:
        self.task_id = task_id
        super().__init__(message)


class DuplicateTaskError(TaskGraphError):
    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f'Task "{task_id}" already exists.')


class ConcurrentModificationError(TaskGraphError):
    """The store changed between the read and the write of one command."""

    def __init__(self, expected_version: int, actual_version: int) -> None:
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            "Task graph changed concurrently "
            f"(expected version {expected_version}, found {actual_version}). "
            "Re-read the graph and retry the command."
        )


__all__ = [
    "ConcurrentModificationError",
    "DuplicateTaskError",
    "GraphValidationError",
    "InvalidTransitionError",
    "TaskGraphError",
    "TaskNotFoundError",
]
