"""Stateful tree traversal over a resolved derivation graph.

File: src/drvtree/ui/tui/navigator.py

The tree shape is a pure function of the graph and the expansion map, so the visible
rows are rebuilt from scratch on every navigation or render call. Every operation is
total: an empty graph, a missing root, or a zero-height viewport never raises.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from drvtree.constants import (
    COLLAPSED_MARKER,
    DEFAULT_INDENT_WIDTH,
    EXPANDED_MARKER,
    LEAF_MARKER,
)
from drvtree.ui.tui.state import Direction, NavigatorState, RenderedLine, VisibleEntry

if TYPE_CHECKING:
    from drvtree.domain.models import Derivation
    from drvtree.graph.derivation_graph import DerivationGraph, NodeHandle


class GraphNavigator:
    """Expand/collapse, selection and scrolling over a read-only graph."""

    def __init__(
        self,
        graph: DerivationGraph,
        root: NodeHandle | None,
        *,
        indent_width: int = DEFAULT_INDENT_WIDTH,
        state: NavigatorState | None = None,
    ) -> None:
        if indent_width < 0:
            raise ValueError("indent_width must be >= 0")
        if root is not None and root not in graph:
            raise KeyError(f"unknown root handle: {root}")
        self._graph = graph
        self._indent = " " * indent_width
        self.state = state if state is not None else NavigatorState()
        self.state.root = root

    @property
    def graph(self) -> DerivationGraph:
        return self._graph

    @property
    def selected(self) -> NodeHandle | None:
        return self.state.selected

    @property
    def scroll(self) -> int:
        return self.state.scroll

    @property
    def viewport_height(self) -> int:
        return self.state.viewport_height

    def visible_nodes(self) -> tuple[NodeHandle, ...]:
        self.recompute_visible()
        return self.state.visible_nodes

    def is_expanded(self, handle: NodeHandle) -> bool:
        return self.state.expanded.get(handle, True)

    def max_scroll(self) -> int:
        height = self.state.viewport_height
        if height <= 0:
            return 0
        return max(0, len(self.state.visible) - height)

    def set_height(self, height: int) -> None:
        self.state.viewport_height = max(0, height)
        self._clamp_scroll()

    def recompute_visible(self) -> list[VisibleEntry]:
        """Rebuild the depth-first, expansion-filtered row list starting at the root."""
        state = self.state
        rows: list[VisibleEntry] = []
        if state.root is not None:
            # (handle, depth, ancestors) keeps a cyclic graph from recursing forever
            stack: list[tuple[NodeHandle, int, frozenset[NodeHandle]]] = [
                (state.root, 0, frozenset())
            ]
            while stack:
                handle, depth, ancestors = stack.pop()
                rows.append(VisibleEntry(handle=handle, depth=depth))
                expanded = state.expanded.setdefault(handle, True)
                if not expanded:
                    continue
                path = ancestors | {handle}
                children = [child for child in self._graph.children(handle) if child not in path]
                for child in reversed(children):
                    stack.append((child, depth + 1, path))

        state.visible = rows
        self._relocate_selection()
        self._clamp_scroll()
        return rows

    def move_selection(self, direction: Direction) -> None:
        rows = self.recompute_visible()
        state = self.state
        if not rows:
            return

        if state.selected_index is None:
            index = 0
        elif direction is Direction.UP:
            index = max(0, state.selected_index - 1)
        else:
            index = min(len(rows) - 1, state.selected_index + 1)
        state.selected_index = index
        state.selected = rows[index].handle
        self._follow_selection()

    def toggle_selected(self) -> None:
        """Flip expansion of the selected node; rows refresh on the next call."""
        handle = self.state.selected
        if handle is None:
            return
        self.state.expanded[handle] = not self.is_expanded(handle)

    def scroll_up(self) -> None:
        self.recompute_visible()
        self.state.scroll = max(0, self.state.scroll - 1)

    def scroll_down(self) -> None:
        self.recompute_visible()
        self.state.scroll = min(self.max_scroll(), self.state.scroll + 1)

    def render_lines(self) -> tuple[RenderedLine, ...]:
        rows = self.recompute_visible()
        selected_index = self.state.selected_index
        return tuple(
            RenderedLine(
                text=self._line_text(entry),
                is_selected=index == selected_index,
                depth=entry.depth,
                handle=entry.handle,
            )
            for index, entry in enumerate(rows)
        )

    def window(self) -> tuple[RenderedLine, ...]:
        """Rendered rows that fall inside the viewport."""
        lines = self.render_lines()
        start = self.state.scroll
        return lines[start : start + self.state.viewport_height]

    def selected_derivation(self) -> Derivation | None:
        handle = self.state.selected
        if handle is None:
            return None
        return self._graph[handle]

    def _line_text(self, entry: VisibleEntry) -> str:
        if not self._graph.has_children(entry.handle):
            marker = LEAF_MARKER
        elif self.is_expanded(entry.handle):
            marker = EXPANDED_MARKER
        else:
            marker = COLLAPSED_MARKER
        return f"{self._indent * entry.depth}{marker}{self._graph[entry.handle].name}"

    def _relocate_selection(self) -> None:
        """Keep the cursor on the selected handle after rows above it appear or vanish."""
        state = self.state
        rows = state.visible
        if state.selected is None or not rows:
            state.selected = None
            state.selected_index = None
            return
        previous = state.selected_index
        index = min(previous or 0, len(rows) - 1)
        if rows[index].handle != state.selected:
            matches = [i for i, entry in enumerate(rows) if entry.handle == state.selected]
            if matches:
                index = min(matches, key=lambda i: (abs(i - index), i))
            else:
                state.selected = rows[index].handle
        state.selected_index = index
        if index != previous:
            self._follow_selection()

    def _follow_selection(self) -> None:
        state = self.state
        index = state.selected_index
        if index is None:
            return
        height = state.viewport_height
        if index < state.scroll:
            state.scroll = index
        elif index >= state.scroll + (height - 1):
            state.scroll = index - (height - 2)
        # keep the selected row inside the window even for one-line viewports
        state.scroll = min(state.scroll, index)
        self._clamp_scroll()

    def _clamp_scroll(self) -> None:
        self.state.scroll = max(0, min(self.state.scroll, self.max_scroll()))


__all__ = ["GraphNavigator"]
