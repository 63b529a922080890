"""Dataclass domain models with strict validation and canonical serialization."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, fields
from enum import Enum, StrEnum
from typing import NoReturn, TypeVar, cast

from taskweave.constants import TASK_GRAPH_SCHEMA_VERSION

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

TEnum = TypeVar("TEnum", bound=Enum)

_MAX_TEXT = 65_536
_MAX_ID = 256
_MAX_TITLE = 512
_MAX_COLLECTION = 4096


class TaskStatus(StrEnum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class NodeType(StrEnum):
    """Context-propagation policy of a task node."""

    SPAWN = "spawn"
    FORK = "fork"
    ASK = "ask"


_REQUIRED_FIELDS: frozenset[str] = frozenset({"id", "title"})
_OPTIONAL_FIELDS: frozenset[str] = frozenset(
    {
        "description",
        "status",
        "node_type",
        "dependencies",
        "unblocks",
        "required_capabilities",
        "assigned_subagent",
        "input_context",
        "output_result",
        "question",
        "answer_options",
    }
)


@dataclass(frozen=True, slots=True)
class TaskNode:
    """A single node of the task graph.

    Instances are immutable; every state change produces a new node through
    :func:`dataclasses.replace`. Edge collections are ordered sets: duplicates
    are dropped on construction, keeping the first occurrence.
    """

    id: str
    title: str
    description: str = ""
    status: TaskStatus = TaskStatus.PENDING
    node_type: NodeType = NodeType.SPAWN
    dependencies: tuple[str, ...] = ()
    unblocks: tuple[str, ...] = ()
    required_capabilities: tuple[str, ...] = ()
    assigned_subagent: str | None = None
    input_context: str | None = None
    output_result: str | None = None
    question: str | None = None
    answer_options: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", _as_str(self.id, "TaskNode.id", max_len=_MAX_ID))
        object.__setattr__(
            self, "title", _as_str(self.title, "TaskNode.title", max_len=_MAX_TITLE)
        )
        object.__setattr__(
            self,
            "description",
            _as_str(self.description, "TaskNode.description", min_len=0, strip=False),
        )
        object.__setattr__(self, "status", _as_enum(TaskStatus, self.status, "TaskNode.status"))
        node_type = NodeType.SPAWN if self.node_type is None else self.node_type
        object.__setattr__(
            self, "node_type", _as_enum(NodeType, node_type, "TaskNode.node_type")
        )
        for name in ("dependencies", "unblocks"):
            object.__setattr__(
                self,
                name,
                _as_ordered_set(getattr(self, name), f"TaskNode.{name}", max_len=_MAX_ID),
            )
        for name in ("required_capabilities", "answer_options"):
            object.__setattr__(
                self, name, _as_ordered_set(getattr(self, name), f"TaskNode.{name}")
            )
        object.__setattr__(
            self,
            "assigned_subagent",
            _as_optional_str(self.assigned_subagent, "TaskNode.assigned_subagent"),
        )
        for name in ("input_context", "output_result", "question"):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(
                    self, name, _as_str(value, f"TaskNode.{name}", min_len=0, strip=False)
                )

    @property
    def is_question(self) -> bool:
        return self.node_type is NodeType.ASK

    def to_dict(self) -> dict[str, JSONValue]:
        """Serialize to a JSON-friendly mapping; unset optionals are omitted."""
        payload: dict[str, JSONValue] = {}
        for dataclass_field in fields(self):
            value = getattr(self, dataclass_field.name)
            if value is None:
                continue
            if isinstance(value, Enum):
                payload[dataclass_field.name] = cast("str", value.value)
            elif isinstance(value, tuple):
                payload[dataclass_field.name] = list(value)
            else:
                payload[dataclass_field.name] = value
        return payload

    def to_json(self) -> str:
        return _canonical_json(self.to_dict())

    @classmethod
    def from_json(cls, raw: str) -> TaskNode:
        if not isinstance(raw, str):
            _fail("TaskNode", f"expected JSON string, got {type(raw).__name__}")
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            _fail("TaskNode", f"invalid JSON: {exc}")
        return cls.from_dict(parsed)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> TaskNode:
        parsed = _expect_object(
            data, "TaskNode", required=set(_REQUIRED_FIELDS), optional=set(_OPTIONAL_FIELDS)
        )
        return cls(**parsed)  # type: ignore[arg-type]


def snapshot_to_payload(tasks: Iterable[TaskNode]) -> dict[str, JSONValue]:
    """Wrap an ordered snapshot in a versioned, JSON-friendly envelope."""
    return {
        "schema_version": TASK_GRAPH_SCHEMA_VERSION,
        "tasks": [task.to_dict() for task in tasks],
    }


def snapshot_from_payload(payload: Mapping[str, object]) -> tuple[TaskNode, ...]:
    """Inverse of :func:`snapshot_to_payload`."""
    version = payload.get("schema_version", TASK_GRAPH_SCHEMA_VERSION)
    if isinstance(version, bool) or not isinstance(version, int):
        _fail("snapshot.schema_version", f"expected integer, got {type(version).__name__}")
    if version != TASK_GRAPH_SCHEMA_VERSION:
        _fail(
            "snapshot.schema_version",
            f"unsupported version {version}; expected {TASK_GRAPH_SCHEMA_VERSION}",
        )
    raw_tasks = payload.get("tasks", [])
    if not isinstance(raw_tasks, list):
        _fail("snapshot.tasks", f"expected array, got {type(raw_tasks).__name__}")
    nodes: list[TaskNode] = []
    for index, raw in enumerate(raw_tasks):
        if not isinstance(raw, Mapping):
            _fail(f"snapshot.tasks[{index}]", f"expected object, got {type(raw).__name__}")
        nodes.append(TaskNode.from_dict(raw))
    return tuple(nodes)


def coerce_task_node(value: TaskNode | Mapping[str, object]) -> TaskNode:
    """Accept either a ready node or its mapping form."""
    if isinstance(value, TaskNode):
        return value
    if isinstance(value, Mapping):
        return TaskNode.from_dict(value)
    _fail("TaskNode", f"expected TaskNode or mapping, got {type(value).__name__}")


def _fail(path: str, message: str) -> NoReturn:
    raise ValueError(f"{path}: {message}")


def _canonical_json(value: JSONValue) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _expect_object(
    value: object,
    path: str,
    *,
    required: set[str],
    optional: set[str] | None = None,
) -> dict[str, object]:
    if not isinstance(value, Mapping):
        _fail(path, f"expected object, got {type(value).__name__}")

    parsed: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            _fail(path, f"object keys must be strings, got {type(key).__name__}")
        parsed[key] = item

    allowed = required | (optional or set())
    unknown = sorted(key for key in parsed if key not in allowed)
    if unknown:
        _fail(path, f"unexpected fields: {unknown}")

    missing = sorted(key for key in required if key not in parsed)
    if missing:
        _fail(path, f"missing required fields: {missing}")

    return parsed


def _as_str(
    value: object,
    path: str,
    *,
    min_len: int = 1,
    max_len: int = _MAX_TEXT,
    strip: bool = True,
) -> str:
    if not isinstance(value, str):
        _fail(path, f"expected string, got {type(value).__name__}")
    normalized = value.strip() if strip else value
    if len(normalized) < min_len:
        _fail(path, f"must be at least {min_len} character(s)")
    if len(normalized) > max_len:
        _fail(path, f"must be <= {max_len} characters")
    return normalized


def _as_optional_str(value: object, path: str, *, max_len: int = _MAX_TEXT) -> str | None:
    if value is None:
        return None
    return _as_str(value, path, max_len=max_len)


def _as_enum(enum_type: type[TEnum], value: object, path: str) -> TEnum:
    if isinstance(value, enum_type):
        return value
    if not isinstance(value, str):
        _fail(path, f"expected string enum value, got {type(value).__name__}")
    try:
        return enum_type(value)
    except ValueError:
        allowed = ", ".join(sorted(item.value for item in enum_type))
        _fail(path, f"invalid value {value!r}; expected one of: {allowed}")


def _as_ordered_set(value: object, path: str, *, max_len: int = _MAX_TEXT) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        _fail(path, f"expected array, got {type(value).__name__}")
    if len(value) > _MAX_COLLECTION:
        _fail(path, f"too many items (>{_MAX_COLLECTION})")

    seen: set[str] = set()
    parsed: list[str] = []
    for index, item in enumerate(value):
        text = _as_str(item, f"{path}[{index}]", max_len=max_len)
        if text in seen:
            continue
        seen.add(text)
        parsed.append(text)
    return tuple(parsed)


__all__ = [
    "JSONScalar",
    "JSONValue",
    "NodeType",
    "TaskNode",
    "TaskStatus",
    "coerce_task_node",
    "snapshot_from_payload",
    "snapshot_to_payload",
]
