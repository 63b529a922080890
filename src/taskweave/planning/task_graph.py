"""Validation, normalization and readiness utilities over task-graph snapshots.

All functions are pure: they read an ordered sequence of :class:`TaskNode`
and never mutate it. Iteration always follows the snapshot's own order so
results are deterministic without re-sorting.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Sequence
from dataclasses import replace

from taskweave.domain.models import TaskNode, TaskStatus


class CycleError(ValueError):
    """Raised when a topological order is requested for a cyclic graph."""

    task_ids: tuple[str, ...]

    def __init__(self, task_ids: Iterable[str]) -> None:
        self.task_ids = tuple(task_ids)
        if not self.task_ids:
            message = "Task graph contains at least one cycle."
        else:
            message = f"Task graph contains a cycle involving: {', '.join(self.task_ids)}"
        super().__init__(message)


def _kahn(tasks: Sequence[TaskNode]) -> tuple[list[str], list[str]]:
    """Return ``(sorted_ids, residual_ids)`` for the dependency edges.

    Edges pointing at unknown ids are ignored here; they are reported
    separately by :func:`validate_task_graph`.
    """
    known = {task.id for task in tasks}
    indegree: dict[str, int] = {}
    children: dict[str, list[str]] = {}
    for task in tasks:
        indegree.setdefault(task.id, 0)
        children.setdefault(task.id, [])

    for task in tasks:
        for dep in task.dependencies:
            if dep in known:
                children[dep].append(task.id)
                indegree[task.id] += 1

    ready = deque(task_id for task_id, degree in indegree.items() if degree == 0)
    ordered: list[str] = []
    while ready:
        node = ready.popleft()
        ordered.append(node)
        for child in children[node]:
            indegree[child] -= 1
            if indegree[child] == 0:
                ready.append(child)

    placed = set(ordered)
    residual = [task.id for task in tasks if task.id not in placed]
    return ordered, residual


def detect_cycles(tasks: Sequence[TaskNode]) -> list[str]:
    """Return ids never released by Kahn's algorithm, in graph order.

    The result is the full residual set (cycle members plus anything that
    only hangs off a cycle), not a minimal cycle. Empty means acyclic.
    """
    _, residual = _kahn(tasks)
    return residual


def topological_order(tasks: Sequence[TaskNode]) -> tuple[str, ...]:
    """Return a dependency-respecting order or raise :class:`CycleError`."""
    ordered, residual = _kahn(tasks)
    if residual:
        raise CycleError(residual)
    return tuple(ordered)


def validate_task_graph(tasks: Sequence[TaskNode]) -> list[str]:
    """Check referential integrity and acyclicity.

    Returns human-readable error strings; an empty list means the graph is valid.
    """
    errors: list[str] = []
    all_ids = {task.id for task in tasks}

    if len(all_ids) != len(tasks):
        seen: set[str] = set()
        for task in tasks:
            if task.id in seen:
                errors.append(f'Duplicate task ID: "{task.id}"')
            seen.add(task.id)

    for task in tasks:
        for dep in task.dependencies:
            if dep not in all_ids:
                errors.append(f'Task "{task.id}" depends on unknown task "{dep}"')
        for target in task.unblocks:
            if target not in all_ids:
                errors.append(f'Task "{task.id}" unblocks unknown task "{target}"')

    cycle_ids = detect_cycles(tasks)
    if cycle_ids:
        errors.append(f"Circular dependency detected involving tasks: {', '.join(cycle_ids)}")

    return errors


def normalize_task_graph(tasks: Sequence[TaskNode]) -> tuple[TaskNode, ...]:
    """Return a copy where every dependency/unblock edge exists in both directions.

    Missing reverse edges are appended; edges to unknown ids are left alone.
    Running it on its own output is a no-op.
    """
    dependencies: dict[str, list[str]] = {}
    unblocks: dict[str, list[str]] = {}
    for task in tasks:
        # Duplicate ids share one edge table; the validator reports them.
        dependencies.setdefault(task.id, list(task.dependencies))
        unblocks.setdefault(task.id, list(task.unblocks))

    for task in tasks:
        for dep_id in task.dependencies:
            dep_unblocks = unblocks.get(dep_id)
            if dep_unblocks is not None and task.id not in dep_unblocks:
                dep_unblocks.append(task.id)
        for target_id in task.unblocks:
            target_deps = dependencies.get(target_id)
            if target_deps is not None and task.id not in target_deps:
                target_deps.append(task.id)

    normalized: list[TaskNode] = []
    for task in tasks:
        new_deps = tuple(dependencies[task.id])
        new_unblocks = tuple(unblocks[task.id])
        if new_deps == task.dependencies and new_unblocks == task.unblocks:
            normalized.append(task)
        else:
            normalized.append(replace(task, dependencies=new_deps, unblocks=new_unblocks))
    return tuple(normalized)


def completed_ids(tasks: Iterable[TaskNode]) -> frozenset[str]:
    return frozenset(task.id for task in tasks if task.status is TaskStatus.COMPLETED)


def unmet_dependencies(task: TaskNode, tasks: Iterable[TaskNode]) -> tuple[str, ...]:
    """Dependencies of ``task`` that are not completed, in declared order."""
    done = completed_ids(tasks)
    return tuple(dep for dep in task.dependencies if dep not in done)


def get_unblocked_tasks(tasks: Sequence[TaskNode]) -> list[TaskNode]:
    """Pending tasks whose dependencies are all completed, in graph order."""
    done = completed_ids(tasks)
    return [
        task
        for task in tasks
        if task.status is TaskStatus.PENDING and all(dep in done for dep in task.dependencies)
    ]


def index_by_id(tasks: Iterable[TaskNode]) -> dict[str, TaskNode]:
    """Map id -> node; the first occurrence wins for duplicate ids."""
    index: dict[str, TaskNode] = {}
    for task in tasks:
        index.setdefault(task.id, task)
    return index


__all__ = [
    "CycleError",
    "completed_ids",
    "detect_cycles",
    "get_unblocked_tasks",
    "index_by_id",
    "normalize_task_graph",
    "topological_order",
    "unmet_dependencies",
    "validate_task_graph",
]
