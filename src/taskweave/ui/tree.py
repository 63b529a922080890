"""
taskweave — text views over a task graph snapshot.

File: src/taskweave/ui/tree.py
Last updated: 2026-10-19

Purpose
- ``read_tree``: an indented dependency tree plus a one-line summary.
- ``render_status_block``: a sectioned markdown block a driver can inject
  into its own context before every step.

Functional requirements
- Pure and idempotent: same snapshot in, same text out.
- Every node appears exactly once in the tree, under the first parent that
  reaches it in depth-first order.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Final

from taskweave.constants import ELLIPSIS, OUTPUT_PREVIEW_MAX_CHARS
from taskweave.domain.models import NodeType, TaskNode, TaskStatus
from taskweave.planning.task_graph import completed_ids, get_unblocked_tasks

STATUS_GLYPHS: Final[dict[TaskStatus, str]] = {
    TaskStatus.PENDING: "○",
    TaskStatus.IN_PROGRESS: "◐",
    TaskStatus.COMPLETED: "●",
    TaskStatus.FAILED: "✗",
}
EMPTY_TREE: Final[str] = "(empty task graph)"
STATUS_HINT: Final[str] = (
    'Use "get_unblocked_tasks" to find tasks ready for execution, '
    '"update_task_status" to update task progress.'
)
_INDENT = "  "


@dataclass(frozen=True, slots=True)
class TreeView:
    tree: str
    summary: str


def read_tree(
    tasks: Sequence[TaskNode],
    *,
    preview_max_chars: int = OUTPUT_PREVIEW_MAX_CHARS,
) -> TreeView:
    """Render ``tasks`` as a depth-first dependency tree rooted at dependency-free nodes."""
    summary = summarize(tasks)
    if not tasks:
        return TreeView(tree=EMPTY_TREE, summary=summary)

    children: dict[str, list[TaskNode]] = {task.id: [] for task in tasks}
    for task in tasks:
        for dep in task.dependencies:
            if dep in children:
                children[dep].append(task)

    done = completed_ids(tasks)
    lines: list[str] = []
    visited: set[str] = set()
    # Dependency-free nodes first, then anything left behind by dangling
    # references or a cycle.
    roots = [task for task in tasks if not task.dependencies] + list(tasks)
    for root in roots:
        stack: list[tuple[TaskNode, int]] = [(root, 0)]
        while stack:
            task, depth = stack.pop()
            if task.id in visited:
                continue
            visited.add(task.id)
            lines.extend(_node_lines(task, done, depth, preview_max_chars))
            stack.extend((child, depth + 1) for child in reversed(children[task.id]))

    return TreeView(tree="\n".join(lines), summary=summary)


def summarize(tasks: Sequence[TaskNode]) -> str:
    counts = {status: 0 for status in TaskStatus}
    for task in tasks:
        counts[task.status] += 1
    unanswered = sum(
        1 for task in tasks if task.is_question and task.status is not TaskStatus.COMPLETED
    )
    return (
        f"{len(tasks)} tasks: {counts[TaskStatus.PENDING]} pending, "
        f"{counts[TaskStatus.IN_PROGRESS]} in progress, "
        f"{counts[TaskStatus.COMPLETED]} completed, {counts[TaskStatus.FAILED]} failed; "
        f"{unanswered} unanswered question(s)"
    )


def render_status_block(tasks: Sequence[TaskNode]) -> str | None:
    """Sectioned status overview, or ``None`` when the graph is empty."""
    if not tasks:
        return None

    by_status: dict[TaskStatus, list[TaskNode]] = {status: [] for status in TaskStatus}
    for task in tasks:
        by_status[task.status].append(task)
    ready = get_unblocked_tasks(tasks)
    ready_ids = {task.id for task in ready}
    blocked = [task for task in by_status[TaskStatus.PENDING] if task.id not in ready_ids]
    questions = [
        task for task in tasks if task.is_question and task.status is not TaskStatus.COMPLETED
    ]

    parts = [
        "## Task Graph Status",
        _section("In Progress", by_status[TaskStatus.IN_PROGRESS]),
    ]
    if ready:
        parts.append(_section("Ready to Start", ready))
    parts.append(_section("Blocked / Pending", blocked))
    parts.append(_section("Completed", by_status[TaskStatus.COMPLETED]))
    if by_status[TaskStatus.FAILED]:
        parts.append(_section("Failed", by_status[TaskStatus.FAILED]))
    if questions:
        body = "\n".join(_question_line(task) for task in questions)
        parts.append(f"### Pending Human Questions ({len(questions)})\n{body}")
    parts.append(STATUS_HINT)
    return "\n\n".join(parts)


def _node_lines(
    task: TaskNode,
    done: frozenset[str],
    depth: int,
    preview_max_chars: int,
) -> list[str]:
    pad = _INDENT * depth
    tag = f"[{task.node_type.value}] " if task.node_type is not NodeType.SPAWN else ""
    line = f"{pad}{STATUS_GLYPHS[task.status]} {tag}{task.title} ({task.id})"
    if task.status is TaskStatus.PENDING:
        waiting = [dep for dep in task.dependencies if dep not in done]
        if waiting:
            line += f" — waiting on: {', '.join(waiting)}"

    out = [line]
    detail_pad = pad + _INDENT
    if task.is_question and task.status is not TaskStatus.COMPLETED:
        out.append(f"{detail_pad}? {task.question or task.description}")
        if task.answer_options:
            out.append(f"{detail_pad}options: {' | '.join(task.answer_options)}")
    if task.status is TaskStatus.COMPLETED and task.output_result:
        out.append(f"{detail_pad}→ {preview(task.output_result, preview_max_chars)}")
    return out


def preview(text: str, max_chars: int = OUTPUT_PREVIEW_MAX_CHARS) -> str:
    """Single-line preview of ``text``, truncated with an ellipsis."""
    flat = " ".join(text.split())
    if len(flat) <= max_chars:
        return flat
    return flat[: max(max_chars - len(ELLIPSIS), 0)] + ELLIPSIS


def _section(name: str, nodes: Sequence[TaskNode]) -> str:
    body = "\n".join(_status_line(task) for task in nodes) or "  (none)"
    return f"### {name} ({len(nodes)})\n{body}"


def _status_line(task: TaskNode) -> str:
    deps = f" (depends on: {', '.join(task.dependencies)})" if task.dependencies else ""
    caps = f" [{', '.join(task.required_capabilities)}]" if task.required_capabilities else ""
    agent = f" → {task.assigned_subagent}" if task.assigned_subagent else ""
    return f"  - [{task.id}] {task.title}{deps}{caps}{agent}"


def _question_line(task: TaskNode) -> str:
    line = f"  - [{task.id}] {task.question or task.description}"
    if task.answer_options:
        line += f" (options: {' | '.join(task.answer_options)})"
    return line


__all__ = [
    "EMPTY_TREE",
    "STATUS_GLYPHS",
    "TreeView",
    "preview",
    "read_tree",
    "render_status_block",
    "summarize",
]
