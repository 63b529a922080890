"""Domain layer: task nodes, status/type enums and typed failures."""

from taskweave.domain.errors import (
    ConcurrentModificationError,
    DuplicateTaskError,
    GraphValidationError,
    InvalidTransitionError,
    TaskGraphError,
    TaskNotFoundError,
)
from taskweave.domain.models import (
    NodeType,
    TaskNode,
    TaskStatus,
    coerce_task_node,
    snapshot_from_payload,
    snapshot_to_payload,
)

__all__ = [
    "ConcurrentModificationError",
    "DuplicateTaskError",
    "GraphValidationError",
    "InvalidTransitionError",
    "NodeType",
    "TaskGraphError",
    "TaskNode",
    "TaskNotFoundError",
    "TaskStatus",
    "coerce_task_node",
    "snapshot_from_payload",
    "snapshot_to_payload",
]
