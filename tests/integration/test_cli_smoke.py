"""
taskweave — CLI subprocess smoke contracts

File: tests/integration/test_cli_smoke.py
Last updated: 2026-10-19

Purpose
- Drive `python -m taskweave` end to end against a state file in a temp directory.
- Verify exit codes, command output signals, and the persisted graph between runs.
"""

from __future__ import annotations

import json
import os
import subprocess
import sys
from pathlib import Path

import pytest

pytestmark = pytest.mark.integration

PROJECT_ROOT = Path(__file__).resolve().parents[2]
SRC_PATH = PROJECT_ROOT / "src"

_PLAN_YAML = """\
tasks:
  - id: audit
    title: Audit repository
  - id: research
    title: Research fixes
  - id: analysis
    title: Analysis
    node_type: fork
    dependencies: [audit, research]
"""


def _run_cli(workdir: Path, *args: str) -> subprocess.CompletedProcess[str]:
    env = os.environ.copy()
    existing_pythonpath = env.get("PYTHONPATH")
    src_pythonpath = str(SRC_PATH)
    env["PYTHONPATH"] = (
        src_pythonpath if not existing_pythonpath else f"{src_pythonpath}:{existing_pythonpath}"
    )
    for name in list(env):
        if name.startswith("TASKWEAVE_"):
            del env[name]
    return subprocess.run(
        [sys.executable, "-m", "taskweave", *args],
        cwd=workdir,
        text=True,
        capture_output=True,
        check=False,
        env=env,
    )


def _write(path: Path, contents: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(contents, encoding="utf-8")


def _json(completed: subprocess.CompletedProcess[str]) -> dict[str, object]:
    payload = json.loads(completed.stdout)
    assert isinstance(payload, dict)
    return payload


def test_generate_complete_and_inspect(tmp_path: Path) -> None:
    _write(tmp_path / "plan.yaml", _PLAN_YAML)

    generated = _run_cli(tmp_path, "generate", "plan.yaml")
    assert generated.returncode == 0, generated.stderr
    assert "OK  Task graph created with 3 tasks." in generated.stdout
    assert (tmp_path / "state" / "task_graph.json").is_file()

    ready = _run_cli(tmp_path, "ready", "--json")
    assert ready.returncode == 0, ready.stderr
    ready_payload = _json(ready)
    assert ready_payload["command"] == "ready"
    assert [task["id"] for task in ready_payload["tasks"]] == ["audit", "research"]

    first = _run_cli(tmp_path, "update", "audit", "completed", "--output", "3 issues")
    assert first.returncode == 0, first.stderr
    assert 'OK  Task "Audit repository" completed.' in first.stdout

    second = _run_cli(
        tmp_path, "update", "research", "completed", "--output", "2 papers", "--json"
    )
    assert second.returncode == 0, second.stderr
    second_payload = _json(second)
    (unblocked,) = second_payload["newly_unblocked"]
    assert unblocked["id"] == "analysis"
    assert unblocked["input_context"] == (
        "[From Audit repository]: 3 issues\n\n[From Research fixes]: 2 papers"
    )

    tree = _run_cli(tmp_path, "tree")
    assert tree.returncode == 0, tree.stderr
    assert tree.stdout.splitlines()[0] == "● Audit repository (audit)"
    assert "○ [fork] Analysis (analysis)" in tree.stdout
    assert "3 tasks: 1 pending, 0 in progress, 2 completed, 0 failed" in tree.stdout

    status = _run_cli(tmp_path, "status")
    assert status.returncode == 0, status.stderr
    assert "### Ready to Start (1)\n  - [analysis] Analysis" in status.stdout

    order = _run_cli(tmp_path, "order", "--json")
    assert _json(order)["order"] == ["audit", "research", "analysis"]


def test_runtime_growth_and_questions(tmp_path: Path) -> None:
    graph = str(tmp_path / "graph.json")
    _write(tmp_path / "plan.json", json.dumps([{"id": "A", "title": "Audit"}]))
    assert _run_cli(tmp_path, "generate", "plan.json", "--graph", graph).returncode == 0

    asked = _run_cli(
        tmp_path,
        "ask",
        "Q",
        "--question",
        "Which scale?",
        "--option",
        "small",
        "--option",
        "large",
        "--depends-on",
        "A",
        "--graph",
        graph,
    )
    assert asked.returncode == 0, asked.stderr

    spawned = _run_cli(
        tmp_path, "spawn", "P", "--title", "Plan", "--depends-on", "Q", "--graph", graph
    )
    assert spawned.returncode == 0, spawned.stderr

    early = _run_cli(tmp_path, "answer", "Q", "large", "--graph", graph)
    assert early.returncode == 1
    assert "FAIL  Cannot answer question" in early.stdout

    assert _run_cli(tmp_path, "update", "A", "completed", "--graph", graph).returncode == 0
    answered = _run_cli(tmp_path, "answer", "Q", "large", "--graph", graph, "--json")
    assert answered.returncode == 0, answered.stderr
    payload = _json(answered)
    assert payload["success"] is True
    assert [task["id"] for task in payload["newly_unblocked"]] == ["P"]


def test_rejected_commands_exit_one(tmp_path: Path) -> None:
    _write(tmp_path / "plan.yaml", _PLAN_YAML)
    assert _run_cli(tmp_path, "generate", "plan.yaml").returncode == 0

    missing = _run_cli(tmp_path, "update", "ghost", "completed", "--json")
    blocked = _run_cli(tmp_path, "update", "analysis", "in_progress")

    assert missing.returncode == 1
    assert _json(missing)["message"] == (
        'Task "ghost" not found. Available IDs: audit, research, analysis'
    )
    assert blocked.returncode == 1
    assert "Unmet dependencies: audit, research" in blocked.stdout


def test_invalid_graph_definition_is_rejected_without_writing(tmp_path: Path) -> None:
    _write(
        tmp_path / "plan.yaml",
        "- {id: A, title: a, dependencies: [B]}\n- {id: B, title: b, dependencies: [A]}\n",
    )

    completed = _run_cli(tmp_path, "generate", "plan.yaml")

    assert completed.returncode == 1
    assert "Circular dependency detected involving tasks: A, B" in completed.stdout
    assert not (tmp_path / "state" / "task_graph.json").exists()


@pytest.mark.parametrize(
    ("files", "args", "fragment"),
    [
        ({"plan.yaml": "tasks: {}\n"}, ("generate", "plan.yaml"), "must be a list"),
        ({"plan.yaml": "- {id: A}\n"}, ("generate", "plan.yaml"), "invalid task definition"),
        ({}, ("ready", "--config", "absent.toml"), "config file not found"),
        (
            {"taskweave.toml": "[rendering]\ntitle_max_chars = 1\n"},
            ("ready",),
            "rendering.title_max_chars",
        ),
        ({"state/task_graph.json": "{broken"}, ("ready",), "unable to read task graph"),
    ],
)
def test_input_errors_exit_two(
    tmp_path: Path, files: dict[str, str], args: tuple[str, ...], fragment: str
) -> None:
    for name, contents in files.items():
        _write(tmp_path / name, contents)

    completed = _run_cli(tmp_path, *args)

    assert completed.returncode == 2
    assert fragment in completed.stderr


def test_config_command_shows_profile_overlay(tmp_path: Path) -> None:
    completed = _run_cli(tmp_path, "config", "--profile", "ci", "--json")

    assert completed.returncode == 0, completed.stderr
    payload = _json(completed)
    assert payload["active_profile"] == "ci"
    assert payload["config"]["observability"]["log_format"] == "json"


def test_ci_profile_logs_json_to_stderr(tmp_path: Path) -> None:
    _write(tmp_path / "plan.yaml", _PLAN_YAML)

    completed = _run_cli(tmp_path, "generate", "plan.yaml", "--profile", "ci")

    assert completed.returncode == 0, completed.stderr
    records = [json.loads(line) for line in completed.stderr.splitlines() if line.strip()]
    generated = [record for record in records if record["event"] == "task_graph_generated"]
    assert generated and generated[0]["command"] == "generate"
    assert generated[0]["ready"] == ["audit", "research"]
