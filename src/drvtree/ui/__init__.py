"""UI package exports for CLI, rendering, and the optional TUI surface."""

from drvtree.ui.cli import build_parser, run_cli
from drvtree.ui.render import CLIRenderer, create_renderer
from drvtree.ui.tui import run_tui, tui_available

__all__ = [
    "CLIRenderer",
    "build_parser",
    "create_renderer",
    "run_cli",
    "run_tui",
    "tui_available",
]
