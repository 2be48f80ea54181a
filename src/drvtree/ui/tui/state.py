"""Navigator state: pure data, NO Textual imports.

File: src/drvtree/ui/tui/state.py

Owns the canonical state for the tree navigator. All mutations go through
:class:`~drvtree.ui.tui.navigator.GraphNavigator`; widgets read snapshots.
The state only holds node handles, never derivations.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from drvtree.graph.derivation_graph import NodeHandle


class Direction(enum.Enum):
    """Selection movement direction."""

    UP = "up"
    DOWN = "down"


@dataclass(frozen=True, slots=True)
class VisibleEntry:
    """One row of the flattened tree: a node handle at a depth below the root."""

    handle: NodeHandle
    depth: int


@dataclass(frozen=True, slots=True)
class RenderedLine:
    """A painted tree row."""

    text: str
    is_selected: bool
    depth: int = 0
    handle: NodeHandle | None = None


@dataclass
class NavigatorState:
    """Root state object for the navigator: mutated only by the navigator."""

    root: NodeHandle | None = None
    # Missing entries mean "expanded"; nodes default open on first visit.
    expanded: dict[NodeHandle, bool] = field(default_factory=dict)
    visible: list[VisibleEntry] = field(default_factory=list)
    selected: NodeHandle | None = None
    # Row of ``selected`` in ``visible``; a handle reachable twice occupies two rows.
    selected_index: int | None = None
    scroll: int = 0
    viewport_height: int = 0

    @property
    def visible_nodes(self) -> tuple[NodeHandle, ...]:
        return tuple(entry.handle for entry in self.visible)


__all__ = ["Direction", "NavigatorState", "RenderedLine", "VisibleEntry"]
