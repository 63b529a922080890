"""Control-plane public API: commands, transitions and graph mutators."""

from taskweave.control_plane.engine import CommandResult, TaskGraphEngine
from taskweave.control_plane.mutators import (
    answer_question,
    ask_human,
    fork_task,
    generate_task_graph,
    spawn_task,
)
from taskweave.control_plane.transitions import GraphChange, apply_status_update, complete_task

__all__ = [
    "CommandResult",
    "GraphChange",
    "TaskGraphEngine",
    "answer_question",
    "apply_status_update",
    "ask_human",
    "complete_task",
    "fork_task",
    "generate_task_graph",
    "spawn_task",
]
