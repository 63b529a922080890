"""Unit tests for graph generation and runtime growth (spawn / fork / ask / answer)."""

from __future__ import annotations

from dataclasses import replace

import pytest

from taskweave.control_plane.mutators import (
    answer_question,
    ask_human,
    fork_task,
    generate_task_graph,
    question_title,
    spawn_task,
)
from taskweave.domain.errors import (
    DuplicateTaskError,
    GraphValidationError,
    InvalidTransitionError,
    TaskGraphError,
    TaskNotFoundError,
)
from taskweave.domain.models import NodeType, TaskNode, TaskStatus
from taskweave.planning.task_graph import index_by_id

pytestmark = pytest.mark.unit


def _base() -> tuple[TaskNode, ...]:
    return generate_task_graph(
        [
            {"id": "A", "title": "Audit"},
            {"id": "B", "title": "Build", "dependencies": ["A"]},
        ]
    ).tasks


def test_generate_resets_status_and_output_and_normalizes() -> None:
    change = generate_task_graph(
        [
            TaskNode(id="A", title="Audit", status=TaskStatus.COMPLETED, output_result="stale"),
            {"id": "B", "title": "Build", "dependencies": ["A"]},
            {"id": "C", "title": "Check"},
        ]
    )

    by_id = index_by_id(change.tasks)
    assert all(task.status is TaskStatus.PENDING for task in change.tasks)
    assert by_id["A"].output_result is None
    assert by_id["A"].unblocks == ("B",)
    assert change.message == (
        "Task graph created with 3 tasks. 2 task(s) are immediately ready for execution."
    )


def test_generate_rejects_invalid_graphs() -> None:
    with pytest.raises(GraphValidationError) as error:
        generate_task_graph(
            [
                {"id": "A", "title": "a", "dependencies": ["B"]},
                {"id": "B", "title": "b", "dependencies": ["A"]},
                {"id": "C", "title": "c", "unblocks": ["ghost"]},
            ]
        )

    assert error.value.errors == (
        'Task "C" unblocks unknown task "ghost"',
        "Circular dependency detected involving tasks: A, B",
    )


def test_generate_empty_graph() -> None:
    change = generate_task_graph([])

    assert change.tasks == ()
    assert change.message.startswith("Task graph created with 0 tasks.")


def test_spawn_appends_pending_node_with_symmetric_edges() -> None:
    change = spawn_task(
        _base(),
        task_id="T",
        title="Test",
        dependencies=["A"],
        unblocks=["B"],
        required_capabilities=["pytest"],
        assigned_subagent="tester",
    )

    by_id = index_by_id(change.tasks)
    assert [task.id for task in change.tasks] == ["A", "B", "T"]
    assert change.task == by_id["T"]
    assert by_id["T"].node_type is NodeType.SPAWN
    assert by_id["T"].status is TaskStatus.PENDING
    assert by_id["A"].unblocks == ("B", "T")
    assert by_id["B"].dependencies == ("A", "T")
    assert by_id["T"].assigned_subagent == "tester"
    assert change.message == 'Spawned task "Test".'


def test_spawn_rejects_duplicate_id() -> None:
    with pytest.raises(DuplicateTaskError) as error:
        spawn_task(_base(), task_id="A", title="Again")

    assert error.value.message == 'Task "A" already exists.'


def test_spawn_rejects_unknown_references() -> None:
    with pytest.raises(GraphValidationError, match='depends on unknown task "Z"'):
        spawn_task(_base(), task_id="T", title="Test", dependencies=["Z"])


def test_spawn_rejects_cycle_through_existing_edges() -> None:
    # B already depends on A; a node after B that unblocks A closes a loop.
    with pytest.raises(GraphValidationError, match="Circular dependency"):
        spawn_task(_base(), task_id="L", title="Loop", dependencies=["B"], unblocks=["A"])


def test_fork_creates_fork_node() -> None:
    change = fork_task(_base(), task_id="F", title="Synthesis", dependencies=["A", "B"])

    assert change.task is not None
    assert change.task.node_type is NodeType.FORK
    assert change.message == 'Forked task "Synthesis".'


def test_ask_derives_title_from_question() -> None:
    change = ask_human(
        _base(),
        task_id="Q",
        question="  Which region should we deploy to first?  ",
        answer_options=["eu", "us"],
        dependencies=["A"],
    )

    node = change.task
    assert node is not None
    assert node.node_type is NodeType.ASK
    assert node.title == "Which region should we deploy to first?"
    assert node.question == node.description == node.title
    assert node.answer_options == ("eu", "us")
    assert change.message == 'Asked human: "Which region should we deploy to first?".'


def test_ask_rejects_empty_question() -> None:
    with pytest.raises(TaskGraphError, match="non-empty question"):
        ask_human(_base(), task_id="Q", question="   ")


def test_question_title_truncates_with_ellipsis() -> None:
    question = "x" * 100

    title = question_title(question)

    assert len(title) == 60
    assert title == "x" * 57 + "..."
    assert question_title("short\n question") == "short question"
    assert question_title("abcdefgh", max_chars=6) == "abc..."


def test_answer_completes_question_and_unblocks_dependents() -> None:
    tasks = ask_human(_base(), task_id="Q", question="Scale?", unblocks=["B"]).tasks
    tasks = (replace(tasks[0], status=TaskStatus.COMPLETED), *tasks[1:])

    change = answer_question(tasks, "Q", "large")

    by_id = index_by_id(change.tasks)
    assert by_id["Q"].status is TaskStatus.COMPLETED
    assert by_id["Q"].output_result == "large"
    assert [task.id for task in change.newly_unblocked] == ["B"]
    assert by_id["B"].input_context == "[From Scale?]: large"
    assert change.message == 'Question "Scale?" answered. Newly unblocked: Build.'


def test_answer_rejects_non_questions_and_repeat_answers() -> None:
    tasks = ask_human(_base(), task_id="Q", question="Scale?").tasks

    with pytest.raises(InvalidTransitionError, match="is not a question"):
        answer_question(tasks, "A", "x")

    answered = answer_question(tasks, "Q", "small").tasks
    assert answer_question(tasks, "Q", "small").message == 'Question "Scale?" answered.'
    with pytest.raises(InvalidTransitionError, match="already been answered"):
        answer_question(answered, "Q", "large")


def test_answer_waits_for_question_dependencies() -> None:
    tasks = ask_human(_base(), task_id="Q", question="Scale?", dependencies=["A"]).tasks

    with pytest.raises(InvalidTransitionError) as error:
        answer_question(tasks, "Q", "large")

    assert error.value.message == 'Cannot answer question "Scale?". Unmet dependencies: A'


def test_answer_unknown_question() -> None:
    with pytest.raises(TaskNotFoundError):
        answer_question(_base(), "nope", "x")
