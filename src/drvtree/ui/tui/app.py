"""Main Textual App: view layer that renders navigator state and emits input events.

File: src/drvtree/ui/tui/app.py

This is the top-level Textual App. It:
- Composes the layout (tree panel and status line)
- Wires key bindings to controller input events
- Redraws widgets once per handled event

All interaction logic lives in the controller and navigator; this file only renders.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.css.query import NoMatches

from drvtree.constants import DEFAULT_INDENT_WIDTH, TREE_TITLE
from drvtree.ui.tui.controller import InputEvent, TUIController
from drvtree.ui.tui.navigator import GraphNavigator
from drvtree.ui.tui.widgets.statusline import StatusLine
from drvtree.ui.tui.widgets.tree_view import TreeView

if TYPE_CHECKING:
    from drvtree.graph.derivation_graph import DerivationGraph, NodeHandle

_CSS = """
Screen { background: #05070c; }
"""
_CSS_NO_COLOR = """
Screen { background: black; color: white; }
TreeView { border: round white; background: black; }
StatusLine { background: black; color: white; }
"""


class DerivationTreeApp(App[int]):
    """Interactive derivation graph navigator."""

    TITLE = TREE_TITLE
    CSS = _CSS
    BINDINGS = [
        Binding("up", "navigate('up')", "Up", show=True),
        Binding("down", "navigate('down')", "Down", show=True),
        Binding("enter", "navigate('enter')", "Expand/Collapse", show=True),
        Binding("q", "navigate('quit')", "Quit", show=True),
    ]

    def __init__(
        self,
        graph: DerivationGraph,
        root: NodeHandle | None,
        *,
        indent_width: int = DEFAULT_INDENT_WIDTH,
        no_color: bool = False,
    ) -> None:
        self._no_color = no_color or bool(os.environ.get("NO_COLOR", ""))
        super().__init__()
        if self._no_color:
            self.CSS = _CSS_NO_COLOR  # type: ignore[misc]
        self.navigator = GraphNavigator(graph, root, indent_width=indent_width)
        self.controller = TUIController(self.navigator, on_state_change=self._on_state_change)

    # ------------------------------------------------------------------
    # State change callback: update all widgets
    # ------------------------------------------------------------------

    def _on_state_change(self) -> None:
        try:
            self.query_one(TreeView).refresh()
            self.query_one(StatusLine).update_from_navigator(self.navigator)
        except NoMatches:
            pass

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    def compose(self) -> ComposeResult:
        yield TreeView(self.controller, no_color=self._no_color, id="tree")
        yield StatusLine()

    def on_mount(self) -> None:
        self.query_one(TreeView).focus()
        self._on_state_change()

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def action_navigate(self, name: str) -> None:
        if self.controller.dispatch(InputEvent(name)):
            self.exit(0)


def run_tui_app(
    graph: DerivationGraph,
    root: NodeHandle | None,
    *,
    indent_width: int = DEFAULT_INDENT_WIDTH,
    no_color: bool = False,
) -> int:
    """Create and run the TUI app, returning exit code."""
    app = DerivationTreeApp(graph, root, indent_width=indent_width, no_color=no_color)
    result = app.run()
    return result if isinstance(result, int) else 0


__all__ = ["DerivationTreeApp", "run_tui_app"]
