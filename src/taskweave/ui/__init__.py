"""UI package exports for text views and CLI rendering.

The argparse router lives in ``taskweave.ui.cli`` and is imported lazily by
``taskweave.main``.
"""

from taskweave.ui.render import CLIRenderer, create_renderer
from taskweave.ui.tree import TreeView, read_tree, render_status_block

__all__ = [
    "CLIRenderer",
    "TreeView",
    "create_renderer",
    "read_tree",
    "render_status_block",
]
