"""Interactive navigator package: 3-layer architecture (state / controller / view).

Exposes ``tui_available()`` and ``run_tui()`` for the CLI. The navigator and controller
import without Textual; only the view needs the optional ``tui`` extra.
"""

from __future__ import annotations

import sys
from importlib.util import find_spec
from typing import TYPE_CHECKING

from drvtree.constants import DEFAULT_INDENT_WIDTH

if TYPE_CHECKING:
    from drvtree.graph.derivation_graph import DerivationGraph, NodeHandle


def tui_available() -> bool:
    """Return whether optional TUI dependencies are available in this environment."""
    return find_spec("textual") is not None


def run_tui(
    graph: DerivationGraph,
    root: NodeHandle | None,
    *,
    indent_width: int = DEFAULT_INDENT_WIDTH,
    no_color: bool = False,
) -> int:
    """Run the interactive navigator, or exit with code 2 and install hint if unavailable."""
    if not tui_available():
        print(
            "TUI requires optional dependency. Install: pip install -e '.[tui]'",
            file=sys.stderr,
        )
        return 2

    from drvtree.ui.tui.app import run_tui_app

    return run_tui_app(graph, root, indent_width=indent_width, no_color=no_color)


__all__ = ["run_tui", "tui_available"]
