"""Terminal output for the non-interactive drvtree commands.

File: src/drvtree/ui/render.py

Without colour every method writes plain lines, byte-stable so ``plan`` and ``tree``
output can be diffed or piped. Colour is used only when stdout is a terminal and neither
``NO_COLOR`` nor ``--no-color``/``ui.no_color`` turns it off; styling then goes through
``rich``.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING, TextIO

from rich.console import Console
from rich.text import Text

from drvtree.constants import COLLAPSED_MARKER, EXPANDED_MARKER

if TYPE_CHECKING:
    from collections.abc import Sequence

    from drvtree.ui.tui.state import RenderedLine

_EXPANDED_STYLE = "bold #3fa9f5"
_COLLAPSED_STYLE = "#7f8aa3"


class CLIRenderer:
    """Writes command output to ``stream`` (stdout by default)."""

    def __init__(
        self, *, no_color: bool = False, verbose: bool = False, stream: TextIO | None = None
    ) -> None:
        self.verbose = verbose
        self._stream = stream if stream is not None else sys.stdout
        is_tty = getattr(self._stream, "isatty", lambda: False)()
        self.color = bool(is_tty and not no_color and not os.environ.get("NO_COLOR"))
        self._console = (
            Console(file=self._stream, highlight=False, soft_wrap=True) if self.color else None
        )

    def heading(self, text: str) -> None:
        self._emit(text, style="bold")

    def section(self, title: str) -> None:
        self._emit("")
        self._emit(title, style="bold")

    def items(self, entries: Sequence[str]) -> None:
        for entry in entries:
            self._emit(f"  - {entry}")

    def numbered(self, entries: Sequence[str]) -> None:
        """Numbered list with right-aligned indices: ``   1. libc`` ... ``  10. app``."""
        width = len(str(len(entries)))
        for index, entry in enumerate(entries, start=1):
            self._emit(f"  {index:>{width}}. {entry}")

    def build_result(self, label: str, *, ok: bool) -> None:
        if ok:
            self._emit(f"  OK  {label}", style="green")
        else:
            self._emit(f"  FAIL  {label}", style="bold red")

    def tree(self, lines: Sequence[RenderedLine]) -> None:
        """Navigator rows; with colour on, expand/collapse markers are highlighted."""
        for line in lines:
            if self._console is None:
                self._emit(line.text)
                continue
            styled = Text(line.text)
            styled.highlight_words([EXPANDED_MARKER.strip()], style=_EXPANDED_STYLE)
            styled.highlight_words([COLLAPSED_MARKER.strip()], style=_COLLAPSED_STYLE)
            self._console.print(styled)

    def _emit(self, text: str, *, style: str | None = None) -> None:
        if self._console is None:
            self._stream.write(text + "\n")
        else:
            self._console.print(Text(text, style=style or ""))


def create_renderer(*, no_color: bool = False, verbose: bool = False) -> CLIRenderer:
    return CLIRenderer(no_color=no_color, verbose=verbose)


__all__ = ["CLIRenderer", "create_renderer"]
