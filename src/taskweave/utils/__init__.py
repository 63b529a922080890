"""Shared low-level helpers."""

from taskweave.utils.fs import atomic_write_text

__all__ = ["atomic_write_text"]
