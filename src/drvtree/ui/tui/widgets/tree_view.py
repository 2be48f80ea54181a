"""Tree view widget: paints the navigator window inside a bordered panel.

File: src/drvtree/ui/tui/widgets/tree_view.py

The widget owns no state: every repaint asks the navigator for the rows inside the
viewport. Pointer scrolls are forwarded to the controller.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.style import Style
from rich.text import Text
from textual import events
from textual.widget import Widget

from drvtree.constants import TREE_TITLE
from drvtree.ui.tui.controller import InputEvent

if TYPE_CHECKING:
    from drvtree.ui.tui.controller import TUIController
    from drvtree.ui.tui.state import RenderedLine

_S_DEFAULT = Style(color="#c8cdd8")
_S_SELECTED = Style(reverse=True)
_S_EMPTY = Style(color="#7f8aa3", italic=True)


class TreeView(Widget, can_focus=True):
    """Bordered derivation tree."""

    DEFAULT_CSS = """
    TreeView {
        height: 1fr;
        width: 1fr;
        border: round #3fa9f5;
        background: #0b1020;
        padding: 0 1;
    }
    """

    def __init__(
        self,
        controller: TUIController,
        *,
        no_color: bool = False,
        **kwargs: object,
    ) -> None:
        super().__init__(**kwargs)  # type: ignore[arg-type]
        self._controller = controller
        self._no_color = no_color
        self.border_title = TREE_TITLE

    def on_mount(self) -> None:
        self._sync_height()

    def on_resize(self, event: events.Resize) -> None:
        self._sync_height()

    def on_mouse_scroll_up(self, event: events.MouseScrollUp) -> None:
        event.stop()
        self._controller.dispatch(InputEvent.SCROLL_UP)

    def on_mouse_scroll_down(self, event: events.MouseScrollDown) -> None:
        event.stop()
        self._controller.dispatch(InputEvent.SCROLL_DOWN)

    def render(self) -> Text:
        lines = self._controller.navigator.window()
        if not lines:
            return Text("(no derivations)", style=_S_EMPTY)
        return render_tree_lines(lines, no_color=self._no_color)

    def _sync_height(self) -> None:
        self._controller.resize(self.content_size.height)


def render_tree_lines(lines: tuple[RenderedLine, ...], *, no_color: bool = False) -> Text:
    """Build one styled ``Text`` block, the selected row highlighted."""
    text = Text(no_wrap=True, overflow="ellipsis")
    default = Style() if no_color else _S_DEFAULT
    for index, line in enumerate(lines):
        if index:
            text.append("\n")
        text.append(line.text, style=_S_SELECTED if line.is_selected else default)
    return text


__all__ = ["TreeView", "render_tree_lines"]
