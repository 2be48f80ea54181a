"""Controller layer: translates input events into navigator operations.

File: src/drvtree/ui/tui/controller.py

NO widget/Textual imports. The controller:
1. Receives input events (keys and pointer scrolls) from the view layer.
2. Applies them to the :class:`GraphNavigator`.
3. Notifies the view layer via a callback so it redraws once per event.

This keeps all interaction logic testable without Textual.
"""

from __future__ import annotations

import enum
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import structlog

from drvtree.ui.tui.state import Direction

if TYPE_CHECKING:
    from drvtree.ui.tui.navigator import GraphNavigator

# Type alias for the redraw notification callback
StateCallback = Callable[[], None]


class InputEvent(enum.Enum):
    """Terminal events the interaction loop understands."""

    UP = "up"
    DOWN = "down"
    ENTER = "enter"
    QUIT = "quit"
    SCROLL_UP = "scroll_up"
    SCROLL_DOWN = "scroll_down"


_KEY_EVENTS: dict[str, InputEvent] = {
    "up": InputEvent.UP,
    "down": InputEvent.DOWN,
    "enter": InputEvent.ENTER,
    "q": InputEvent.QUIT,
}


def event_for_key(key: str) -> InputEvent | None:
    """Map a terminal key name to an :class:`InputEvent`; unknown keys map to ``None``."""
    return _KEY_EVENTS.get(key)


class TUIController:
    """Interaction loop controller: one navigator mutation and one redraw per event."""

    def __init__(
        self,
        navigator: GraphNavigator,
        *,
        on_state_change: StateCallback | None = None,
        logger: Any | None = None,
    ) -> None:
        self.navigator = navigator
        self._on_state_change = on_state_change
        self._quit_requested = False
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @property
    def quit_requested(self) -> bool:
        return self._quit_requested

    def dispatch(self, event: InputEvent) -> bool:
        """Apply ``event``; return ``True`` when the loop should terminate."""
        if event is InputEvent.QUIT:
            self._quit_requested = True
            self._logger.debug("tui_quit_requested")
            return True

        navigator = self.navigator
        if event is InputEvent.UP:
            navigator.move_selection(Direction.UP)
        elif event is InputEvent.DOWN:
            navigator.move_selection(Direction.DOWN)
        elif event is InputEvent.ENTER:
            navigator.toggle_selected()
        elif event is InputEvent.SCROLL_UP:
            navigator.scroll_up()
        elif event is InputEvent.SCROLL_DOWN:
            navigator.scroll_down()

        self._notify()
        return False

    def dispatch_key(self, key: str) -> bool:
        event = event_for_key(key)
        if event is None:
            return False
        return self.dispatch(event)

    def resize(self, height: int) -> None:
        """Viewport resized; ``height`` is the tree's inner height."""
        self.navigator.set_height(height)
        self._notify()

    def _notify(self) -> None:
        if self._on_state_change is not None:
            self._on_state_change()


__all__ = ["InputEvent", "StateCallback", "TUIController", "event_for_key"]
