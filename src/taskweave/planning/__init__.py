"""
taskweave — planning layer

File: src/taskweave/planning/__init__.py
Last updated: 2026-10-19

Purpose
- Graph-level algorithms over task snapshots: validation, edge normalization,
  cycle detection and ready-set computation.

Functional requirements
- Never mutate input snapshots.
- Produce repeatable results that follow the snapshot's own ordering.
"""

from __future__ import annotations

from taskweave.planning.task_graph import (
    CycleError,
    completed_ids,
    detect_cycles,
    get_unblocked_tasks,
    index_by_id,
    normalize_task_graph,
    topological_order,
    unmet_dependencies,
    validate_task_graph,
)

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
