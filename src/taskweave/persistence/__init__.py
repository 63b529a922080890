"""Caller-owned storage for task-graph snapshots, plus definition-file input."""

from taskweave.persistence.definition_file import GraphDefinitionError, load_graph_definition
from taskweave.persistence.graph_store import (
    GraphStore,
    GraphStoreError,
    InMemoryGraphStore,
    JsonFileGraphStore,
    Snapshot,
    SnapshotUpdater,
)

__all__ = [
    "GraphDefinitionError",
    "GraphStore",
    "GraphStoreError",
    "InMemoryGraphStore",
    "JsonFileGraphStore",
    "Snapshot",
    "SnapshotUpdater",
    "load_graph_definition",
]
