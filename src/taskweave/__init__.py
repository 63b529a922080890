"""
taskweave — package root

File: src/taskweave/__init__.py
Last updated: 2026-10-19

Purpose
- Dependency-aware task graph engine for coordinating multi-step work among
  autonomous workers.

Import boundary rules
- No side effects at import time (no config loading, no logging setup).
- Heavy submodules (CLI, config loader) are not imported here.
"""

from __future__ import annotations

from taskweave.control_plane.engine import CommandResult, TaskGraphEngine
from taskweave.domain.models import NodeType, TaskNode, TaskStatus
from taskweave.persistence.graph_store import InMemoryGraphStore, JsonFileGraphStore

__version__ = "0.1.0"

__all__ = [
    "CommandResult",
    "InMemoryGraphStore",
    "JsonFileGraphStore",
    "NodeType",
    "TaskGraphEngine",
    "TaskNode",
    "TaskStatus",
    "__version__",
]
