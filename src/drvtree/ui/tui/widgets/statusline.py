"""Status line widget: always-visible bottom bar describing the selection.

File: src/drvtree/ui/tui/widgets/statusline.py

Shows: selected derivation name/system/builder, and row position.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from textual.app import ComposeResult
from textual.containers import Horizontal
from textual.widget import Widget
from textual.widgets import Static

if TYPE_CHECKING:
    from drvtree.domain.models import Derivation
    from drvtree.ui.tui.navigator import GraphNavigator


class StatusLine(Widget):
    """Always-visible status bar showing the selected derivation."""

    DEFAULT_CSS = """
    StatusLine {
        dock: bottom;
        height: 1;
        background: #0b1020;
        color: #7f8aa3;
        padding: 0 1;
    }
    #status-inner {
        width: 100%;
        height: 1;
    }
    #status-selection {
        width: 1fr;
    }
    #status-position {
        width: auto;
        min-width: 12;
        text-align: right;
    }
    """

    def compose(self) -> ComposeResult:
        with Horizontal(id="status-inner"):
            yield Static("", id="status-selection")
            yield Static("", id="status-position")

    def update_from_navigator(self, navigator: GraphNavigator) -> None:
        """Refresh all status segments from navigator state."""
        self.query_one("#status-selection", Static).update(
            selection_text(navigator.selected_derivation())
        )
        state = navigator.state
        total = len(state.visible)
        if state.selected_index is None:
            position = f" {total} rows "
        else:
            position = f" {state.selected_index + 1}/{total} "
        self.query_one("#status-position", Static).update(position)


def selection_text(derivation: Derivation | None) -> str:
    if derivation is None:
        return " up/down select, enter expand/collapse, q quit"
    outputs = ",".join(sorted(derivation.outputs)) or "-"
    return f" {derivation.name}  [{derivation.system}]  {derivation.builder}  outputs: {outputs}"


__all__ = ["StatusLine", "selection_text"]
