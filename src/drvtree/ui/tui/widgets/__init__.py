"""Textual widgets for the derivation tree view."""

from drvtree.ui.tui.widgets.statusline import StatusLine
from drvtree.ui.tui.widgets.tree_view import TreeView

__all__ = ["StatusLine", "TreeView"]
