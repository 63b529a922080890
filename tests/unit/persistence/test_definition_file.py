"""Unit tests for reading task graph definition files."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from taskweave.domain.models import NodeType
from taskweave.persistence import GraphDefinitionError, load_graph_definition

if TYPE_CHECKING:
    from pathlib import Path

pytestmark = pytest.mark.unit


def test_yaml_list_becomes_task_nodes(tmp_path: Path) -> None:
    path = tmp_path / "plan.yaml"
    path.write_text(
        "- {id: audit, title: Audit}\n"
        "- id: review\n"
        "  title: Review\n"
        "  node_type: fork\n"
        "  dependencies: [audit]\n",
        encoding="utf-8",
    )

    nodes = load_graph_definition(path)

    assert [node.id for node in nodes] == ["audit", "review"]
    assert nodes[1].node_type is NodeType.FORK
    assert nodes[1].dependencies == ("audit",)


def test_json_object_with_tasks_key(tmp_path: Path) -> None:
    path = tmp_path / "plan.json"
    path.write_text(json.dumps({"tasks": [{"id": "A", "title": "Only"}]}), encoding="utf-8")

    assert [node.title for node in load_graph_definition(path)] == ["Only"]


def test_bad_entry_is_reported_with_its_index(tmp_path: Path) -> None:
    path = tmp_path / "plan.yaml"
    path.write_text("- {id: A, title: a}\n- {id: B}\n", encoding="utf-8")

    with pytest.raises(GraphDefinitionError, match=r"invalid task definition plan\.yaml\[1\]"):
        load_graph_definition(path)


@pytest.mark.parametrize(
    ("name", "content", "fragment"),
    [
        ("plan.yaml", "tasks: {}\n", "must be a list"),
        ("plan.yaml", "- just a string\n", r"plan\.yaml\[0\]: expected object, got str"),
        ("plan.yaml", "- {id: A\n", "unable to parse task definition"),
        ("plan.json", "[{", "unable to parse task definition"),
    ],
)
def test_malformed_files_are_rejected(
    tmp_path: Path, name: str, content: str, fragment: str
) -> None:
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")

    with pytest.raises(GraphDefinitionError, match=fragment):
        load_graph_definition(path)


def test_missing_file_is_a_definition_error(tmp_path: Path) -> None:
    with pytest.raises(GraphDefinitionError, match="unable to read task definition"):
        load_graph_definition(tmp_path / "absent.yaml")
