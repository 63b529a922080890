"""
Status transitions, unblock detection and context propagation.

Transition table (target status on the left):
- ``in_progress``: from pending or failed once every dependency is completed;
  a repeated start is a no-op success.
- ``completed``: from pending, in_progress or failed; triggers the unblock scan.
- ``failed``: from pending or in_progress; a repeated fail is a no-op success.
- a completed task never changes again.

On completion, every pending task listed in the completed task's ``unblocks``
whose dependencies are now all completed is "newly unblocked" and receives
input context according to its node type:
- ``spawn`` / ``ask``: the attribution of the task that just completed.
- ``fork``: attributions of every completed task in the graph that has output.

The completion, the unblock scan and the propagated context land in one new
snapshot.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace

from taskweave.domain.errors import InvalidTransitionError, TaskNotFoundError
from taskweave.domain.models import NodeType, TaskNode, TaskStatus
from taskweave.planning.task_graph import completed_ids, index_by_id, unmet_dependencies

_CONTEXT_SEPARATOR = "\n\n"
_ALLOWED_TARGETS: frozenset[TaskStatus] = frozenset(
    {TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED, TaskStatus.FAILED}
)


@dataclass(frozen=True, slots=True)
class GraphChange:
    """Result of a pure graph operation: the next snapshot plus what changed."""

    tasks: tuple[TaskNode, ...]
    message: str
    task: TaskNode | None = None
    newly_unblocked: tuple[TaskNode, ...] = ()
    changed: bool = True


def attribution(task: TaskNode) -> str:
    return f"[From {task.title}]: {task.output_result}"


def append_context(existing: str | None, addition: str) -> str:
    if not existing:
        return addition
    return f"{existing}{_CONTEXT_SEPARATOR}{addition}"


def find_task(tasks: Sequence[TaskNode], task_id: str) -> TaskNode:
    task = index_by_id(tasks).get(task_id)
    if task is None:
        raise TaskNotFoundError(task_id, [item.id for item in tasks])
    return task


def apply_status_update(
    tasks: Sequence[TaskNode],
    task_id: str,
    status: TaskStatus | str,
    output_result: str | None = None,
) -> GraphChange:
    """Apply one status transition and return the resulting snapshot."""
    task = find_task(tasks, task_id)
    target = _parse_target_status(task_id, status)

    if task.status is TaskStatus.COMPLETED:
        raise InvalidTransitionError(
            task_id,
            f'Task "{task.title}" is already completed and cannot be changed to "{target.value}".',
        )

    if target is TaskStatus.IN_PROGRESS:
        return _start(tasks, task)
    if target is TaskStatus.FAILED:
        return _fail(tasks, task)

    change = complete_task(tasks, task, output_result)
    if change.newly_unblocked:
        titles = ", ".join(item.title for item in change.newly_unblocked)
        message = f'Task "{task.title}" completed. Newly unblocked: {titles}.'
    else:
        message = f'Task "{task.title}" completed.'
    return replace(change, message=message)


def complete_task(
    tasks: Sequence[TaskNode],
    task: TaskNode,
    output_result: str | None,
) -> GraphChange:
    """Mark ``task`` completed, find newly unblocked tasks and propagate context.

    Shared by status updates and question answers. The returned message is a
    placeholder that callers replace with their own wording.
    """
    updated = replace(
        task,
        status=TaskStatus.COMPLETED,
        output_result=output_result if output_result is not None else task.output_result,
    )
    graph = [updated if item.id == task.id else item for item in tasks]
    done = completed_ids(graph)
    targets = set(updated.unblocks)

    next_graph: list[TaskNode] = []
    unblocked: list[TaskNode] = []
    for item in graph:
        if (
            item.id in targets
            and item.status is TaskStatus.PENDING
            and all(dep in done for dep in item.dependencies)
        ):
            item = _with_propagated_context(item, updated, graph)
            unblocked.append(item)
        next_graph.append(item)

    return GraphChange(
        tasks=tuple(next_graph),
        message=f'Task "{task.title}" completed.',
        task=updated,
        newly_unblocked=tuple(unblocked),
    )


def _with_propagated_context(
    target: TaskNode,
    source: TaskNode,
    graph: Sequence[TaskNode],
) -> TaskNode:
    if target.node_type is NodeType.FORK:
        lines = [
            attribution(item)
            for item in graph
            if item.status is TaskStatus.COMPLETED and item.output_result
        ]
        if not lines:
            return target
        addition = _CONTEXT_SEPARATOR.join(lines)
    else:
        if not source.output_result:
            return target
        addition = attribution(source)
    return replace(target, input_context=append_context(target.input_context, addition))


def _start(tasks: Sequence[TaskNode], task: TaskNode) -> GraphChange:
    if task.status is TaskStatus.IN_PROGRESS:
        return GraphChange(
            tasks=tuple(tasks),
            message=f'Task "{task.title}" is already in progress.',
            task=task,
            changed=False,
        )

    unmet = unmet_dependencies(task, tasks)
    if unmet:
        raise InvalidTransitionError(
            task.id,
            f'Cannot start task "{task.title}". Unmet dependencies: {", ".join(unmet)}',
        )

    if task.status is TaskStatus.FAILED:
        message = f'Restarted failed task "{task.title}".'
    else:
        message = f'Task "{task.title}" is now in progress.'
    return _replace_status(tasks, task, TaskStatus.IN_PROGRESS, message)


def _fail(tasks: Sequence[TaskNode], task: TaskNode) -> GraphChange:
    if task.status is TaskStatus.FAILED:
        return GraphChange(
            tasks=tuple(tasks),
            message=f'Task "{task.title}" is already failed.',
            task=task,
            changed=False,
        )
    return _replace_status(
        tasks, task, TaskStatus.FAILED, f'Task "{task.title}" marked as failed.'
    )


def _replace_status(
    tasks: Sequence[TaskNode],
    task: TaskNode,
    status: TaskStatus,
    message: str,
) -> GraphChange:
    updated = replace(task, status=status)
    return GraphChange(
        tasks=tuple(updated if item.id == task.id else item for item in tasks),
        message=message,
        task=updated,
    )


def _parse_target_status(task_id: str, status: TaskStatus | str) -> TaskStatus:
    target: TaskStatus | None
    try:
        target = TaskStatus(status)
    except ValueError:
        target = None
    if target is None or target not in _ALLOWED_TARGETS:
        allowed = ", ".join(sorted(item.value for item in _ALLOWED_TARGETS))
        raise InvalidTransitionError(
            task_id, f'Invalid status "{status}". Expected one of: {allowed}'
        )
    return target


__all__ = [
    "GraphChange",
    "append_context",
    "apply_status_update",
    "attribution",
    "complete_task",
    "find_task",
]
