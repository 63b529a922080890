"""Stable constants shared across taskweave planes."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Final

# Schema versions for persisted contracts.
CONFIG_SCHEMA_VERSION: Final[int] = 1
TASK_GRAPH_SCHEMA_VERSION: Final[int] = 1

# Name of the session slot that holds the ordered task list.
TASK_GRAPH_SLOT: Final[str] = "taskGraph"

# Default runtime paths (relative to the config file unless overridden).
STATE_DIR: Final[PurePosixPath] = PurePosixPath("state")
DEFAULT_GRAPH_FILE: Final[PurePosixPath] = STATE_DIR / "task_graph.json"

# Display limits.
QUESTION_TITLE_MAX_CHARS: Final[int] = 60
OUTPUT_PREVIEW_MAX_CHARS: Final[int] = 80
ELLIPSIS: Final[str] = "..."

__all__ = [
    "CONFIG_SCHEMA_VERSION",
    "DEFAULT_GRAPH_FILE",
    "ELLIPSIS",
    "OUTPUT_PREVIEW_MAX_CHARS",
    "QUESTION_TITLE_MAX_CHARS",
    "STATE_DIR",
    "TASK_GRAPH_SCHEMA_VERSION",
    "TASK_GRAPH_SLOT",
]
