"""Module entrypoint for ``python -m taskweave``."""

from __future__ import annotations

from taskweave.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
