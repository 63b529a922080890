"""Process entrypoint for ``taskweave``: run the CLI and turn failures into exit codes.

Exit codes
- 0: the command succeeded.
- 1: the engine rejected the command (unknown task, unmet dependencies, cycle).
- 2: bad input outside the graph itself: config, state file, definition file.
- 4: anything else; the traceback goes to stderr.
"""

from __future__ import annotations

import sys
import traceback
from enum import IntEnum
from typing import TYPE_CHECKING

from taskweave.config import ConfigLoadError, ConfigValidationError
from taskweave.persistence import GraphDefinitionError, GraphStoreError

if TYPE_CHECKING:
    from collections.abc import Sequence


class ExitCode(IntEnum):
    SUCCESS = 0
    COMMAND_REJECTED = 1
    INPUT_ERROR = 2
    INTERNAL_ERROR = 4


INPUT_ERRORS: tuple[type[Exception], ...] = (
    ConfigLoadError,
    ConfigValidationError,
    GraphStoreError,
    GraphDefinitionError,
)


def cli_entrypoint(argv: Sequence[str] | None = None) -> int:
    """Entrypoint used by ``python -m taskweave`` and the ``taskweave`` script."""
    # The CLI module imports ExitCode from here.
    from taskweave.ui.cli import run_cli

    try:
        return run_cli(argv)
    except INPUT_ERRORS as exc:
        sys.stderr.write(f"error: {exc}\n")
        return int(ExitCode.INPUT_ERROR)
    except Exception:  # noqa: BLE001 - last line before the process exits.
        traceback.print_exc(file=sys.stderr)
        return int(ExitCode.INTERNAL_ERROR)


__all__ = ["INPUT_ERRORS", "ExitCode", "cli_entrypoint"]
