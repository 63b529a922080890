"""
taskweave — task graph definition files

File: src/taskweave/persistence/definition_file.py
Last updated: 2026-10-19

Purpose
- Read the YAML or JSON file handed to ``taskweave generate`` into task nodes.

Functional requirements
- Accept either a top-level list of task objects or an object with a ``tasks`` list.
- Every failure is a ``GraphDefinitionError`` naming the file and, for bad
  entries, the entry index (``plan.yaml[2]: ...``).
- No graph semantics here: references and cycles are checked by the engine.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import cast

import yaml

from taskweave.domain.models import TaskNode, coerce_task_node
from taskweave.utils.fs import PathLike


class GraphDefinitionError(ValueError):
    """Raised when a definition file cannot be read or holds malformed tasks."""


def load_graph_definition(path: PathLike) -> list[TaskNode]:
    source = Path(path)
    try:
        text = source.read_text(encoding="utf-8")
    except OSError as exc:
        raise GraphDefinitionError(f"unable to read task definition {source}: {exc}") from exc

    try:
        if source.suffix.lower() == ".json":
            loaded = cast("object", json.loads(text))
        else:
            loaded = cast("object", yaml.safe_load(text))
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise GraphDefinitionError(f"unable to parse task definition {source}: {exc}") from exc

    if isinstance(loaded, Mapping):
        loaded = loaded.get("tasks")
    if not isinstance(loaded, list):
        raise GraphDefinitionError(
            f"task definition {source} must be a list of task objects or {{'tasks': [...]}}"
        )

    nodes: list[TaskNode] = []
    for index, item in enumerate(loaded):
        location = f"{source.name}[{index}]"
        if not isinstance(item, Mapping):
            raise GraphDefinitionError(
                f"invalid task definition {location}: expected object, got {type(item).__name__}"
            )
        try:
            nodes.append(coerce_task_node(item))
        except (TypeError, ValueError) as exc:
            raise GraphDefinitionError(f"invalid task definition {location}: {exc}") from exc
    return nodes


__all__ = ["GraphDefinitionError", "load_graph_definition"]
