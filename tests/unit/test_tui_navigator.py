"""Unit tests for the graph navigator: pure state logic, no Textual needed.

File: tests/unit/test_tui_navigator.py

Tests:
- Initial expansion, row flattening and rendered indentation
- Selection movement and expand/collapse
- Viewport scrolling and the selection-follow policy
- Degenerate inputs: empty graph, no root, zero-height viewport
- Property checks over random DAGs and event sequences
"""

from __future__ import annotations

import pytest
from hypothesis import assume, given, settings
from hypothesis import strategies as st

from conftest import graph_from_edges
from drvtree.graph import DerivationGraph
from drvtree.ui.tui.navigator import GraphNavigator
from drvtree.ui.tui.state import Direction

pytestmark = pytest.mark.unit

_CHAIN = (["A", "B", "C"], [("A", "B"), ("B", "C")])
_WIDE = (
    ["root", "a", "a1", "a2", "b", "c"],
    [("root", "a"), ("a", "a1"), ("a", "a2"), ("root", "b"), ("root", "c")],
)


def _navigator(shape=_CHAIN, *, height: int = 10, indent_width: int = 2) -> GraphNavigator:
    graph, handles = graph_from_edges(*shape)
    nav = GraphNavigator(graph, handles[shape[0][0]], indent_width=indent_width)
    nav.set_height(height)
    return nav


def _names(nav: GraphNavigator) -> list[str]:
    return [nav.graph[h].name for h in nav.visible_nodes()]


class TestFlattening:
    def test_everything_starts_expanded(self) -> None:
        nav = _navigator(_WIDE)
        assert _names(nav) == ["root", "a", "a1", "a2", "b", "c"]
        assert [entry.depth for entry in nav.state.visible] == [0, 1, 2, 2, 1, 1]

    def test_render_indents_by_depth_with_markers(self) -> None:
        nav = _navigator()
        lines = nav.render_lines()
        assert [line.text for line in lines] == ["▼ A", "  ▼ B", "      C"]
        assert [line.depth for line in lines] == [0, 1, 2]
        assert not any(line.is_selected for line in lines)

    def test_indent_width_is_configurable(self) -> None:
        nav = _navigator(indent_width=4)
        assert nav.render_lines()[1].text == "    ▼ B"

    def test_shared_node_appears_under_each_parent(self) -> None:
        nav = _navigator(
            (
                ["app", "lib", "cli", "libc"],
                [("app", "lib"), ("app", "cli"), ("lib", "libc"), ("cli", "libc")],
            )
        )
        assert _names(nav) == ["app", "lib", "libc", "cli", "libc"]

    def test_cyclic_graph_does_not_loop(self) -> None:
        graph, h = graph_from_edges(["a", "b"], [("a", "b"), ("b", "a")])
        nav = GraphNavigator(graph, h["a"])
        assert [graph[x].name for x in nav.visible_nodes()] == ["a", "b"]


class TestSelection:
    def test_first_move_selects_root_then_walks_down(self) -> None:
        nav = _navigator()
        assert nav.selected is None

        nav.move_selection(Direction.DOWN)
        assert nav.selected_derivation().name == "A"
        nav.move_selection(Direction.DOWN)
        assert nav.selected_derivation().name == "B"

    def test_first_move_up_also_selects_root(self) -> None:
        nav = _navigator()
        nav.move_selection(Direction.UP)
        assert nav.state.selected_index == 0

    def test_selection_stops_at_both_ends(self) -> None:
        nav = _navigator()
        for _ in range(10):
            nav.move_selection(Direction.DOWN)
        assert nav.selected_derivation().name == "C"
        for _ in range(10):
            nav.move_selection(Direction.UP)
        assert nav.selected_derivation().name == "A"

    def test_toggle_hides_and_restores_subtree(self) -> None:
        nav = _navigator(_WIDE)
        nav.move_selection(Direction.DOWN)
        nav.move_selection(Direction.DOWN)
        assert nav.selected_derivation().name == "a"

        nav.toggle_selected()
        assert _names(nav) == ["root", "a", "b", "c"]
        assert nav.render_lines()[1].text == "  ▶ a"
        assert nav.render_lines()[1].is_selected

        nav.toggle_selected()
        assert _names(nav) == ["root", "a", "a1", "a2", "b", "c"]

    def test_collapse_is_remembered_per_node(self) -> None:
        nav = _navigator(_WIDE)
        nav.move_selection(Direction.DOWN)
        nav.move_selection(Direction.DOWN)
        nav.toggle_selected()
        nav.move_selection(Direction.UP)
        nav.toggle_selected()
        nav.toggle_selected()

        assert _names(nav) == ["root", "a", "b", "c"]
        assert not nav.is_expanded(nav.graph.find_by_name("a")[0])

    def test_toggle_without_selection_is_a_no_op(self) -> None:
        nav = _navigator()
        nav.toggle_selected()
        assert _names(nav) == ["A", "B", "C"]

    def test_selection_clamps_when_rows_disappear(self) -> None:
        nav = _navigator(_WIDE)
        nav.move_selection(Direction.DOWN)
        for _ in range(5):
            nav.move_selection(Direction.DOWN)
        assert nav.selected_derivation().name == "c"

        nav.state.expanded[nav.state.root] = False
        nav.recompute_visible()
        assert nav.state.selected_index == 0
        assert nav.selected_derivation().name == "root"

    def test_expanding_a_shared_node_keeps_it_selected(self) -> None:
        nav = _navigator(
            (
                ["app", "lib", "cli", "libc", "x"],
                [
                    ("app", "lib"),
                    ("app", "cli"),
                    ("lib", "libc"),
                    ("cli", "libc"),
                    ("libc", "x"),
                ],
            )
        )
        libc = nav.graph.find_by_name("libc")[0]
        nav.state.expanded[libc] = False
        for _ in range(5):
            nav.move_selection(Direction.DOWN)
        assert nav.state.selected_index == 4
        assert nav.selected == libc

        nav.toggle_selected()
        lines = nav.render_lines()

        (selected,) = [line for line in lines if line.is_selected]
        assert selected.handle == libc
        assert nav.state.selected_index == 5
        assert [line.text.strip() for line in lines] == [
            "▼ app", "▼ lib", "▼ libc", "x", "▼ cli", "▼ libc", "x"
        ]

        # the second toggle collapses libc again
        nav.toggle_selected()
        assert not nav.is_expanded(libc)
        assert nav.is_expanded(nav.graph.find_by_name("cli")[0])


class TestScrolling:
    def test_moving_past_the_bottom_scrolls(self) -> None:
        nav = _navigator(_WIDE, height=3)
        for _ in range(6):
            nav.move_selection(Direction.DOWN)

        assert nav.state.selected_index == 5
        assert nav.scroll == nav.max_scroll() == 3
        window = nav.window()
        assert len(window) == 3
        assert window[-1].is_selected

    def test_moving_above_the_window_scrolls_back(self) -> None:
        nav = _navigator(_WIDE, height=3)
        for _ in range(6):
            nav.move_selection(Direction.DOWN)
        for _ in range(5):
            nav.move_selection(Direction.UP)
        assert nav.scroll == 0
        assert nav.window()[0].is_selected

    def test_one_line_viewport_keeps_selection_visible(self) -> None:
        nav = _navigator(height=1)
        for _ in range(3):
            nav.move_selection(Direction.DOWN)
            (line,) = nav.window()
            assert line.is_selected

    def test_scroll_wheel_moves_window_within_bounds(self) -> None:
        nav = _navigator(_WIDE, height=4)
        nav.scroll_up()
        assert nav.scroll == 0
        for _ in range(10):
            nav.scroll_down()
        assert nav.scroll == 2
        nav.scroll_up()
        assert nav.scroll == 1

    def test_growing_viewport_clamps_scroll(self) -> None:
        nav = _navigator(_WIDE, height=2)
        for _ in range(10):
            nav.scroll_down()
        assert nav.scroll == 4
        nav.set_height(10)
        assert nav.scroll == 0


class TestDegenerateInputs:
    def test_no_root_is_total(self) -> None:
        nav = GraphNavigator(DerivationGraph(), None)
        nav.set_height(5)
        nav.move_selection(Direction.DOWN)
        nav.toggle_selected()
        nav.scroll_down()
        assert nav.visible_nodes() == ()
        assert nav.render_lines() == ()
        assert nav.selected_derivation() is None

    def test_zero_height_renders_nothing(self) -> None:
        nav = _navigator(height=0)
        nav.move_selection(Direction.DOWN)
        nav.scroll_down()
        assert nav.window() == ()
        assert nav.max_scroll() == 0
        assert len(nav.render_lines()) == 3

    def test_negative_height_is_treated_as_zero(self) -> None:
        nav = _navigator(height=-4)
        assert nav.viewport_height == 0

    def test_unknown_root_is_rejected(self) -> None:
        graph, _ = graph_from_edges(["a"])
        with pytest.raises(KeyError):
            GraphNavigator(graph, 7)

    def test_negative_indent_is_rejected(self) -> None:
        graph, h = graph_from_edges(["a"])
        with pytest.raises(ValueError):
            GraphNavigator(graph, h["a"], indent_width=-1)


@st.composite
def _dags(draw: st.DrawFn) -> tuple[list[str], list[tuple[str, str]]]:
    size = draw(st.integers(min_value=1, max_value=12))
    names = [f"n{index}" for index in range(size)]
    edges: list[tuple[str, str]] = []
    for index in range(1, size):
        parents = draw(st.sets(st.integers(min_value=0, max_value=index - 1), max_size=3))
        edges.extend((names[parent], names[index]) for parent in sorted(parents))
    return names, edges


_ACTIONS = st.lists(
    st.sampled_from(["up", "down", "toggle", "scroll_up", "scroll_down"]), max_size=40
)


def _apply(nav: GraphNavigator, action: str) -> None:
    if action == "up":
        nav.move_selection(Direction.UP)
    elif action == "down":
        nav.move_selection(Direction.DOWN)
    elif action == "toggle":
        nav.toggle_selected()
    elif action == "scroll_up":
        nav.scroll_up()
    else:
        nav.scroll_down()


@given(dag=_dags(), actions=_ACTIONS, height=st.integers(min_value=0, max_value=6))
@settings(max_examples=150, deadline=None)
def test_selection_and_scroll_stay_in_bounds(dag, actions: list[str], height: int) -> None:
    names, edges = dag
    graph, handles = graph_from_edges(names, edges)
    nav = GraphNavigator(graph, handles["n0"])
    nav.set_height(height)

    for action in actions:
        _apply(nav, action)
        rows = nav.recompute_visible()
        index = nav.state.selected_index
        assert index is None or 0 <= index < len(rows)
        assert 0 <= nav.scroll <= nav.max_scroll()
        assert len(nav.window()) <= max(height, 0)
        assert rows[0].handle == handles["n0"]


@given(dag=_dags(), actions=_ACTIONS)
@settings(max_examples=150, deadline=None)
def test_selection_moves_keep_the_selected_row_in_the_window(dag, actions: list[str]) -> None:
    names, edges = dag
    graph, handles = graph_from_edges(names, edges)
    nav = GraphNavigator(graph, handles["n0"])
    nav.set_height(3)

    for action in actions:
        _apply(nav, action)
        if action in {"up", "down"}:
            assert any(line.is_selected for line in nav.window())


@given(dag=_dags(), pick=st.integers(min_value=0))
@settings(max_examples=150, deadline=None)
def test_collapsing_a_row_hides_exactly_its_subtree(dag, pick: int) -> None:
    names, edges = dag
    graph, handles = graph_from_edges(names, edges)
    nav = GraphNavigator(graph, handles["n0"])
    before = list(nav.recompute_visible())
    index = pick % len(before)
    # a handle shown in several rows collapses in all of them
    assume(sum(entry.handle == before[index].handle for entry in before) == 1)

    nav.state.selected_index = index
    nav.state.selected = before[index].handle
    nav.toggle_selected()
    after = nav.recompute_visible()

    depth = before[index].depth
    end = index + 1
    while end < len(before) and before[end].depth > depth:
        end += 1
    assert after == before[: index + 1] + before[end:]
