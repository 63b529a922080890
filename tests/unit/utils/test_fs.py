"""Unit tests for atomic filesystem writes."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest

from taskweave.utils.fs import atomic_write_text

if TYPE_CHECKING:
    from pathlib import Path

pytestmark = pytest.mark.unit


def test_atomic_write_creates_parents_and_replaces(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "graph.json"

    atomic_write_text(target, "first")
    atomic_write_text(target, "second")

    assert target.read_text(encoding="utf-8") == "second"
    assert sorted(os.listdir(target.parent)) == ["graph.json"]


def test_atomic_write_cleans_up_temp_file_on_failure(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    target = tmp_path / "graph.json"
    target.write_text("original", encoding="utf-8")

    def _boom(src: object, dst: object) -> None:
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", _boom)

    with pytest.raises(OSError, match="disk full"):
        atomic_write_text(target, "new")

    assert target.read_text(encoding="utf-8") == "original"
    assert sorted(os.listdir(tmp_path)) == ["graph.json"]
