"""
Command surface over a caller-owned graph store.

Each command reads ``(snapshot, version)`` from the store, runs one pure
operation from ``transitions`` / ``mutators`` and, when the snapshot changed,
writes the result back in a single replace guarded by the version it read.

Expected failures (``TaskGraphError``) never escape: they come back as
``CommandResult(success=False, message=...)`` and are logged as
``task_graph_command_rejected``. Malformed input (wrong types, empty ids)
still raises ``ValueError`` / ``TypeError`` from model construction.

Integrates with:
- `GraphStore` implementations from `taskweave.persistence`
- `structlog` for machine-parseable command logs
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import structlog

from taskweave.constants import OUTPUT_PREVIEW_MAX_CHARS, QUESTION_TITLE_MAX_CHARS
from taskweave.control_plane import mutators
from taskweave.control_plane.transitions import GraphChange, apply_status_update
from taskweave.domain.errors import TaskGraphError
from taskweave.domain.models import TaskNode, TaskStatus, coerce_task_node
from taskweave.observability.logging import correlation_scope
from taskweave.persistence.graph_store import GraphStore, Snapshot
from taskweave.planning.task_graph import (
    get_unblocked_tasks,
    normalize_task_graph,
    validate_task_graph,
)
from taskweave.ui.tree import read_tree, render_status_block


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Structured outcome of one engine command."""

    success: bool
    message: str
    task_id: str | None = None
    task: TaskNode | None = None
    tasks: tuple[TaskNode, ...] | None = None
    newly_unblocked: tuple[TaskNode, ...] | None = None
    task_count: int | None = None
    tree: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": self.success, "message": self.message}
        if self.task_id is not None:
            payload["task_id"] = self.task_id
        if self.task is not None:
            payload["task"] = self.task.to_dict()
        if self.tasks is not None:
            payload["tasks"] = [task.to_dict() for task in self.tasks]
        if self.newly_unblocked is not None:
            payload["newly_unblocked"] = [task.to_dict() for task in self.newly_unblocked]
        if self.task_count is not None:
            payload["task_count"] = self.task_count
        if self.tree is not None:
            payload["tree"] = self.tree
        return payload


class TaskGraphEngine:
    """One method per command; every mutating command is a single store replace."""

    def __init__(
        self,
        store: GraphStore,
        *,
        logger: Any | None = None,
        title_max_chars: int = QUESTION_TITLE_MAX_CHARS,
        preview_max_chars: int = OUTPUT_PREVIEW_MAX_CHARS,
    ) -> None:
        self._store = store
        self._logger = logger if logger is not None else structlog.get_logger(__name__)
        self._title_max_chars = title_max_chars
        self._preview_max_chars = preview_max_chars

    @classmethod
    def create(
        cls,
        store: GraphStore,
        initial_tasks: Iterable[TaskNode | Mapping[str, object]] = (),
        **kwargs: Any,
    ) -> TaskGraphEngine:
        """Seed ``store`` with a normalized initial graph.

        Validation problems in the initial graph are logged, not rejected.
        """
        engine = cls(store, **kwargs)
        nodes = normalize_task_graph([coerce_task_node(spec) for spec in initial_tasks])
        errors = validate_task_graph(nodes)
        if errors:
            engine._logger.warning(
                "task_graph_initial_validation_warnings",
                slot=store.slot,
                errors=errors,
            )
        store.replace(nodes)
        return engine

    @property
    def store(self) -> GraphStore:
        return self._store

    def snapshot(self) -> Snapshot:
        tasks, _ = self._store.read()
        return tasks

    def generate_task_graph(
        self, tasks: Iterable[TaskNode | Mapping[str, object]]
    ) -> CommandResult:
        specs = list(tasks)
        outcome = self._apply("generate_task_graph", lambda _: mutators.generate_task_graph(specs))
        if isinstance(outcome, CommandResult):
            return outcome
        self._logger.info(
            "task_graph_generated",
            task_count=len(outcome.tasks),
            ready=[task.id for task in get_unblocked_tasks(outcome.tasks)],
        )
        return CommandResult(
            success=True,
            message=outcome.message,
            task_count=len(outcome.tasks),
            tasks=outcome.tasks,
        )

    def get_unblocked_tasks(self) -> CommandResult:
        tasks = self.snapshot()
        ready = tuple(get_unblocked_tasks(tasks))
        if ready:
            message = f"{len(ready)} task(s) are ready for execution."
        else:
            message = _nothing_ready_message(tasks)
        return CommandResult(success=True, message=message, tasks=ready)

    def update_task_status(
        self,
        task_id: str,
        status: TaskStatus | str,
        output_result: str | None = None,
    ) -> CommandResult:
        outcome = self._apply(
            "update_task_status",
            lambda tasks: apply_status_update(tasks, task_id, status, output_result),
            task_id=task_id,
        )
        if isinstance(outcome, CommandResult):
            return outcome
        if outcome.changed:
            self._logger.info(
                "task_status_updated",
                task_id=task_id,
                status=outcome.task.status.value if outcome.task else None,
                newly_unblocked=[task.id for task in outcome.newly_unblocked],
            )
        return self._result(outcome, task_id=task_id)

    def spawn_task(
        self,
        task_id: str,
        title: str,
        description: str = "",
        dependencies: Sequence[str] = (),
        unblocks: Sequence[str] = (),
        required_capabilities: Sequence[str] = (),
        assigned_subagent: str | None = None,
    ) -> CommandResult:
        return self._grow(
            "spawn_task",
            lambda tasks: mutators.spawn_task(
                tasks,
                task_id=task_id,
                title=title,
                description=description,
                dependencies=dependencies,
                unblocks=unblocks,
                required_capabilities=required_capabilities,
                assigned_subagent=assigned_subagent,
            ),
            task_id,
        )

    def fork_task(
        self,
        task_id: str,
        title: str,
        description: str = "",
        dependencies: Sequence[str] = (),
        unblocks: Sequence[str] = (),
        required_capabilities: Sequence[str] = (),
        assigned_subagent: str | None = None,
    ) -> CommandResult:
        return self._grow(
            "fork_task",
            lambda tasks: mutators.fork_task(
                tasks,
                task_id=task_id,
                title=title,
                description=description,
                dependencies=dependencies,
                unblocks=unblocks,
                required_capabilities=required_capabilities,
                assigned_subagent=assigned_subagent,
            ),
            task_id,
        )

    def ask_human(
        self,
        task_id: str,
        question: str,
        answer_options: Sequence[str] = (),
        dependencies: Sequence[str] = (),
        unblocks: Sequence[str] = (),
    ) -> CommandResult:
        return self._grow(
            "ask_human",
            lambda tasks: mutators.ask_human(
                tasks,
                task_id=task_id,
                question=question,
                answer_options=answer_options,
                dependencies=dependencies,
                unblocks=unblocks,
                title_max_chars=self._title_max_chars,
            ),
            task_id,
        )

    def answer_question(self, task_id: str, answer: str) -> CommandResult:
        outcome = self._apply(
            "answer_question",
            lambda tasks: mutators.answer_question(tasks, task_id, answer),
            task_id=task_id,
        )
        if isinstance(outcome, CommandResult):
            return outcome
        self._logger.info(
            "question_answered",
            task_id=task_id,
            newly_unblocked=[task.id for task in outcome.newly_unblocked],
        )
        return self._result(outcome, task_id=task_id)

    def read_tree(self) -> CommandResult:
        tasks = self.snapshot()
        view = read_tree(tasks, preview_max_chars=self._preview_max_chars)
        return CommandResult(success=True, message=view.summary, tree=view.tree, tasks=tasks)

    def status_block(self) -> str | None:
        return render_status_block(self.snapshot())

    def _grow(
        self,
        command: str,
        operation: Callable[[Snapshot], GraphChange],
        task_id: str,
    ) -> CommandResult:
        outcome = self._apply(command, operation, task_id=task_id)
        if isinstance(outcome, CommandResult):
            return outcome
        created = outcome.task
        self._logger.info(
            "task_spawned",
            task_id=task_id,
            node_type=created.node_type.value if created else None,
            dependencies=list(created.dependencies) if created else [],
        )
        return CommandResult(success=True, message=outcome.message, task=created)

    def _apply(
        self,
        command: str,
        operation: Callable[[Snapshot], GraphChange],
        *,
        task_id: str | None = None,
    ) -> GraphChange | CommandResult:
        with correlation_scope(command=command, slot=self._store.slot):
            tasks, version = self._store.read()
            try:
                change = operation(tasks)
                if change.changed:
                    self._store.replace(change.tasks, expected_version=version)
            except TaskGraphError as exc:
                self._logger.warning(
                    "task_graph_command_rejected",
                    task_id=task_id,
                    error=exc.message,
                    error_type=type(exc).__name__,
                )
                return CommandResult(success=False, message=exc.message, task_id=task_id)
            return change

    @staticmethod
    def _result(change: GraphChange, *, task_id: str) -> CommandResult:
        return CommandResult(
            success=True,
            message=change.message,
            task_id=task_id,
            task=change.task,
            newly_unblocked=change.newly_unblocked,
        )


def _nothing_ready_message(tasks: Sequence[TaskNode]) -> str:
    in_progress = sum(1 for task in tasks if task.status is TaskStatus.IN_PROGRESS)
    pending = sum(1 for task in tasks if task.status is TaskStatus.PENDING)
    if in_progress:
        return (
            f"No tasks are unblocked. {in_progress} task(s) are currently in progress. "
            "Waiting for them to complete."
        )
    if pending:
        return (
            f"No tasks are currently unblocked. {pending} task(s) are still pending "
            "but have unmet dependencies."
        )
    return "All tasks have been completed or failed. No tasks remaining."


__all__ = ["CommandResult", "TaskGraphEngine"]
