"""Command-line interface router for taskweave."""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from taskweave.config import dump_effective_config, load_config
from taskweave.control_plane.engine import CommandResult, TaskGraphEngine
from taskweave.domain.models import TaskNode
from taskweave.main import ExitCode
from taskweave.observability.logging import correlation_scope, setup_logging
from taskweave.persistence import JsonFileGraphStore, load_graph_definition
from taskweave.planning.task_graph import CycleError, topological_order
from taskweave.ui.render import CLIRenderer, create_renderer
from taskweave.ui.tree import EMPTY_TREE

_STATUS_CHOICES = ("in_progress", "completed", "failed")


@dataclass(slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = ExitCode.COMMAND_REJECTED

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router for every task-graph command."""

    parser = argparse.ArgumentParser(
        prog="taskweave",
        description=(
            "taskweave — dependency-aware task graphs for coordinating agents.\n\n"
            "Common workflows:\n"
            "  taskweave generate plan.yaml     Create a graph from a definition file\n"
            "  taskweave ready                  List tasks ready to start\n"
            "  taskweave update T1 completed    Complete a task and unblock dependents\n"
            "  taskweave tree                   Show the dependency tree\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to taskweave TOML config (default: ./taskweave.toml if present).",
    )
    common.add_argument("--profile", default=None, help="Optional config profile overlay name.")
    common.add_argument(
        "--graph",
        dest="graph_path",
        default=None,
        help="Task graph state file (default: paths.graph_file from config).",
    )
    common.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Emit the command result as JSON on stdout.",
    )
    common.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=False,
        help="Show detailed output and debug logs.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser(
        "generate",
        parents=[common],
        help="Replace the graph with tasks from a YAML or JSON file",
        description=(
            "Create a fresh task graph. The file holds a list of task mappings or\n"
            "an object with a 'tasks' list; every task starts pending.\n\n"
            "Examples:\n"
            "  taskweave generate plan.yaml\n"
            "  taskweave generate plan.json --json\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    generate_parser.add_argument("definition", help="Path to a .yaml/.yml/.json task list.")
    generate_parser.set_defaults(handler=_cmd_generate)

    ready_parser = subparsers.add_parser(
        "ready", parents=[common], help="List pending tasks whose dependencies are completed"
    )
    ready_parser.set_defaults(handler=_cmd_ready)

    update_parser = subparsers.add_parser(
        "update", parents=[common], help="Change a task's status"
    )
    update_parser.add_argument("task_id")
    update_parser.add_argument("status", choices=_STATUS_CHOICES)
    update_parser.add_argument(
        "--output",
        dest="output_result",
        default=None,
        help="Result text recorded on completion and passed to unblocked tasks.",
    )
    update_parser.set_defaults(handler=_cmd_update)

    for name, help_text in (
        ("spawn", "Add a task that receives only its trigger's result"),
        ("fork", "Add a task that receives every completed result"),
    ):
        grow_parser = subparsers.add_parser(name, parents=[common], help=help_text)
        grow_parser.add_argument("task_id")
        grow_parser.add_argument("--title", required=True)
        grow_parser.add_argument("--description", default="")
        _add_edge_arguments(grow_parser)
        grow_parser.add_argument(
            "--capability",
            dest="capabilities",
            action="append",
            default=[],
            help="Required capability (repeatable).",
        )
        grow_parser.add_argument("--agent", dest="assigned_subagent", default=None)
        grow_parser.set_defaults(handler=_cmd_grow, node_kind=name)

    ask_parser = subparsers.add_parser(
        "ask", parents=[common], help="Add a question gated on a human answer"
    )
    ask_parser.add_argument("task_id")
    ask_parser.add_argument("--question", required=True)
    ask_parser.add_argument(
        "--option",
        dest="options",
        action="append",
        default=[],
        help="Suggested answer (repeatable).",
    )
    _add_edge_arguments(ask_parser)
    ask_parser.set_defaults(handler=_cmd_ask)

    answer_parser = subparsers.add_parser(
        "answer", parents=[common], help="Answer a pending question"
    )
    answer_parser.add_argument("task_id")
    answer_parser.add_argument("answer")
    answer_parser.set_defaults(handler=_cmd_answer)

    tree_parser = subparsers.add_parser("tree", parents=[common], help="Show the dependency tree")
    tree_parser.set_defaults(handler=_cmd_tree)

    status_parser = subparsers.add_parser(
        "status", parents=[common], help="Show the sectioned status overview"
    )
    status_parser.set_defaults(handler=_cmd_status)

    order_parser = subparsers.add_parser(
        "order", parents=[common], help="Print a dependency-respecting task order"
    )
    order_parser.set_defaults(handler=_cmd_order)

    config_parser = subparsers.add_parser(
        "config", parents=[common], help="Show the effective configuration"
    )
    config_parser.set_defaults(handler=_cmd_config)

    return parser


def _add_edge_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--depends-on",
        dest="dependencies",
        action="append",
        default=[],
        help="Upstream task id (repeatable).",
    )
    parser.add_argument(
        "--unblocks",
        dest="unblocks",
        action="append",
        default=[],
        help="Downstream task id (repeatable).",
    )


# ---------------------------------------------------------------------------
# Entrypoints
# ---------------------------------------------------------------------------


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return int(ExitCode.INPUT_ERROR)

    try:
        with correlation_scope(command=namespace.command):
            result = handler(namespace)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    return int(result)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_generate(args: argparse.Namespace) -> int:
    engine = _open_engine(args)
    result = engine.generate_task_graph(load_graph_definition(args.definition))
    return _emit_result(args, "generate", result)


def _cmd_ready(args: argparse.Namespace) -> int:
    return _emit_result(args, "ready", _open_engine(args).get_unblocked_tasks())


def _cmd_update(args: argparse.Namespace) -> int:
    engine = _open_engine(args)
    result = engine.update_task_status(args.task_id, args.status, args.output_result)
    return _emit_result(args, "update", result)


def _cmd_grow(args: argparse.Namespace) -> int:
    engine = _open_engine(args)
    grow = engine.fork_task if args.node_kind == "fork" else engine.spawn_task
    try:
        result = grow(
            args.task_id,
            args.title,
            args.description,
            dependencies=args.dependencies,
            unblocks=args.unblocks,
            required_capabilities=args.capabilities,
            assigned_subagent=args.assigned_subagent,
        )
    except (TypeError, ValueError) as exc:
        raise CLIError(str(exc), ExitCode.INPUT_ERROR) from exc
    return _emit_result(args, args.node_kind, result)


def _cmd_ask(args: argparse.Namespace) -> int:
    engine = _open_engine(args)
    try:
        result = engine.ask_human(
            args.task_id,
            args.question,
            answer_options=args.options,
            dependencies=args.dependencies,
            unblocks=args.unblocks,
        )
    except (TypeError, ValueError) as exc:
        raise CLIError(str(exc), ExitCode.INPUT_ERROR) from exc
    return _emit_result(args, "ask", result)


def _cmd_answer(args: argparse.Namespace) -> int:
    result = _open_engine(args).answer_question(args.task_id, args.answer)
    return _emit_result(args, "answer", result)


def _cmd_tree(args: argparse.Namespace) -> int:
    result = _open_engine(args).read_tree()
    if _flag(args, "json"):
        _emit_json({"command": "tree", **result.to_dict()})
        return int(ExitCode.SUCCESS)

    renderer = _get_renderer(args)
    renderer.text(result.tree or EMPTY_TREE)
    renderer.section(result.message)
    return int(ExitCode.SUCCESS)


def _cmd_status(args: argparse.Namespace) -> int:
    block = _open_engine(args).status_block()
    if _flag(args, "json"):
        _emit_json({"command": "status", "status": block})
        return int(ExitCode.SUCCESS)

    renderer = _get_renderer(args)
    if block is None:
        renderer.text(EMPTY_TREE)
        renderer.next_steps(["taskweave generate plan.yaml"])
    else:
        renderer.text(block)
    return int(ExitCode.SUCCESS)


def _cmd_order(args: argparse.Namespace) -> int:
    tasks = _open_engine(args).snapshot()
    try:
        order = topological_order(tasks)
    except CycleError as exc:
        raise CLIError(str(exc), ExitCode.COMMAND_REJECTED) from exc

    if _flag(args, "json"):
        _emit_json({"command": "order", "order": list(order)})
        return int(ExitCode.SUCCESS)

    titles = {task.id: task.title for task in tasks}
    renderer = _get_renderer(args)
    for position, task_id in enumerate(order, start=1):
        renderer.text(f"{position:>3}. [{task_id}] {titles[task_id]}")
    return int(ExitCode.SUCCESS)


def _cmd_config(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    profile = _optional_str(getattr(args, "profile", None))

    if _flag(args, "json"):
        _emit_json({"command": "config", "active_profile": profile, "config": config})
        return int(ExitCode.SUCCESS)

    renderer = _get_renderer(args)
    renderer.kv("Active profile", profile or "(default)")
    renderer.text(dump_effective_config(config))
    return int(ExitCode.SUCCESS)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _emit_result(args: argparse.Namespace, command: str, result: CommandResult) -> int:
    exit_code = ExitCode.SUCCESS if result.success else ExitCode.COMMAND_REJECTED
    if _flag(args, "json"):
        _emit_json({"command": command, **result.to_dict()})
        return int(exit_code)

    renderer = _get_renderer(args)
    if not result.success:
        renderer.fail(result.message)
        return int(exit_code)

    renderer.ok(result.message)
    if command == "ready" and result.tasks:
        renderer.items([_task_label(task) for task in result.tasks])
    if result.newly_unblocked:
        renderer.section("Newly unblocked:")
        renderer.items([_task_label(task) for task in result.newly_unblocked])
    if renderer.verbose and result.task is not None:
        _render_task(renderer, result.task)
    return int(exit_code)


def _render_task(renderer: CLIRenderer, task: TaskNode) -> None:
    renderer.section(f"Task {task.id}:")
    for key, value in task.to_dict().items():
        renderer.kv(f"  {key}", value)


def _task_label(task: TaskNode) -> str:
    label = f"[{task.id}] {task.title}"
    if task.input_context:
        label += " (has input context)"
    return label


def _emit_json(payload: Mapping[str, object]) -> None:
    """Emit a JSON payload to stdout with deterministic formatting."""

    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))


def _get_renderer(args: argparse.Namespace) -> CLIRenderer:
    return create_renderer(verbose=_flag(args, "verbose"))


def _open_engine(args: argparse.Namespace) -> TaskGraphEngine:
    config = _load_effective_config(args)
    setup_logging(config["observability"])

    raw_graph = _optional_str(getattr(args, "graph_path", None))
    graph_path = Path(raw_graph) if raw_graph else Path(config["paths"]["graph_file"])
    rendering = config["rendering"]
    return TaskGraphEngine(
        JsonFileGraphStore(graph_path),
        title_max_chars=rendering["title_max_chars"],
        preview_max_chars=rendering["preview_max_chars"],
    )


def _load_effective_config(args: argparse.Namespace) -> dict[str, Any]:
    config_path = _optional_str(getattr(args, "config_path", None))
    profile = _optional_str(getattr(args, "profile", None))
    overrides: dict[str, object] = {}
    if _flag(args, "verbose"):
        overrides["observability.log_level"] = "DEBUG"

    return load_config(config_path, profile=profile, cli_overrides=overrides)


def _optional_str(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _flag(args: argparse.Namespace, name: str) -> bool:
    return bool(getattr(args, name, False))


__all__ = ["CLIError", "build_parser", "run_cli"]
