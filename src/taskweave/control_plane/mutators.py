"""Graph construction and runtime growth: generate, spawn, fork, ask and answer."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace

from taskweave.constants import ELLIPSIS, QUESTION_TITLE_MAX_CHARS
from taskweave.control_plane.transitions import GraphChange, complete_task, find_task
from taskweave.domain.errors import (
    DuplicateTaskError,
    GraphValidationError,
    InvalidTransitionError,
    TaskGraphError,
)
from taskweave.domain.models import NodeType, TaskNode, TaskStatus, coerce_task_node
from taskweave.planning.task_graph import (
    get_unblocked_tasks,
    index_by_id,
    normalize_task_graph,
    unmet_dependencies,
    validate_task_graph,
)


def question_title(question: str, max_chars: int = QUESTION_TITLE_MAX_CHARS) -> str:
    """Derive a display title from a question, truncating with an ellipsis."""
    text = " ".join(question.split())
    if len(text) <= max_chars:
        return text
    return text[: max(max_chars - len(ELLIPSIS), 0)] + ELLIPSIS


def normalized_or_raise(tasks: Sequence[TaskNode]) -> tuple[TaskNode, ...]:
    """Normalize then validate; raise :class:`GraphValidationError` on problems."""
    normalized = normalize_task_graph(tasks)
    errors = validate_task_graph(normalized)
    if errors:
        raise GraphValidationError(errors)
    return normalized


def generate_task_graph(specs: Iterable[TaskNode | Mapping[str, object]]) -> GraphChange:
    """Build a fresh graph; every node starts pending with no output."""
    fresh = [
        replace(coerce_task_node(spec), status=TaskStatus.PENDING, output_result=None)
        for spec in specs
    ]
    normalized = normalized_or_raise(fresh)
    ready = get_unblocked_tasks(normalized)
    return GraphChange(
        tasks=normalized,
        message=(
            f"Task graph created with {len(normalized)} tasks. "
            f"{len(ready)} task(s) are immediately ready for execution."
        ),
    )


def add_task(tasks: Sequence[TaskNode], node: TaskNode) -> tuple[tuple[TaskNode, ...], TaskNode]:
    """Append ``node`` as pending to a live graph and re-check the whole graph."""
    if node.id in index_by_id(tasks):
        raise DuplicateTaskError(node.id)
    candidate = [*tasks, replace(node, status=TaskStatus.PENDING)]
    normalized = normalized_or_raise(candidate)
    return normalized, normalized[-1]


def spawn_task(
    tasks: Sequence[TaskNode],
    *,
    task_id: str,
    title: str,
    description: str = "",
    dependencies: Sequence[str] = (),
    unblocks: Sequence[str] = (),
    required_capabilities: Sequence[str] = (),
    assigned_subagent: str | None = None,
) -> GraphChange:
    node = TaskNode(
        id=task_id,
        title=title,
        description=description,
        node_type=NodeType.SPAWN,
        dependencies=tuple(dependencies),
        unblocks=tuple(unblocks),
        required_capabilities=tuple(required_capabilities),
        assigned_subagent=assigned_subagent,
    )
    graph, created = add_task(tasks, node)
    return GraphChange(tasks=graph, message=f'Spawned task "{created.title}".', task=created)


def fork_task(
    tasks: Sequence[TaskNode],
    *,
    task_id: str,
    title: str,
    description: str = "",
    dependencies: Sequence[str] = (),
    unblocks: Sequence[str] = (),
    required_capabilities: Sequence[str] = (),
    assigned_subagent: str | None = None,
) -> GraphChange:
    """Like :func:`spawn_task`, but the node collects every completed result."""
    node = TaskNode(
        id=task_id,
        title=title,
        description=description,
        node_type=NodeType.FORK,
        dependencies=tuple(dependencies),
        unblocks=tuple(unblocks),
        required_capabilities=tuple(required_capabilities),
        assigned_subagent=assigned_subagent,
    )
    graph, created = add_task(tasks, node)
    return GraphChange(tasks=graph, message=f'Forked task "{created.title}".', task=created)


def ask_human(
    tasks: Sequence[TaskNode],
    *,
    task_id: str,
    question: str,
    answer_options: Sequence[str] = (),
    dependencies: Sequence[str] = (),
    unblocks: Sequence[str] = (),
    title_max_chars: int = QUESTION_TITLE_MAX_CHARS,
) -> GraphChange:
    """Add a question node that completes only when an answer is supplied."""
    if not isinstance(question, str) or not question.strip():
        raise TaskGraphError(f'Task "{task_id}" requires a non-empty question.')
    text = question.strip()
    node = TaskNode(
        id=task_id,
        title=question_title(text, title_max_chars),
        description=text,
        node_type=NodeType.ASK,
        dependencies=tuple(dependencies),
        unblocks=tuple(unblocks),
        question=text,
        answer_options=tuple(answer_options),
    )
    graph, created = add_task(tasks, node)
    return GraphChange(tasks=graph, message=f'Asked human: "{created.title}".', task=created)


def answer_question(tasks: Sequence[TaskNode], task_id: str, answer: str) -> GraphChange:
    """Complete an ``ask`` node with ``answer`` as its output."""
    task = find_task(tasks, task_id)
    if task.node_type is not NodeType.ASK:
        raise InvalidTransitionError(
            task_id, f'Task "{task_id}" is not a question (node_type={task.node_type.value}).'
        )
    if task.status is TaskStatus.COMPLETED:
        raise InvalidTransitionError(
            task_id, f'Question "{task.title}" has already been answered.'
        )
    unmet = unmet_dependencies(task, tasks)
    if unmet:
        raise InvalidTransitionError(
            task_id,
            f'Cannot answer question "{task.title}". Unmet dependencies: {", ".join(unmet)}',
        )

    change = complete_task(tasks, task, answer)
    message = f'Question "{task.title}" answered.'
    if change.newly_unblocked:
        titles = ", ".join(item.title for item in change.newly_unblocked)
        message = f"{message} Newly unblocked: {titles}."
    return replace(change, message=message)


__all__ = [
    "add_task",
    "answer_question",
    "ask_human",
    "fork_task",
    "generate_task_graph",
    "normalized_or_raise",
    "question_title",
    "spawn_task",
]
