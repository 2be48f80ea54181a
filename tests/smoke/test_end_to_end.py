"""
drvtree: end-to-end smoke test

File: tests/smoke/test_end_to_end.py

Purpose
- Walk one descriptor chain through every layer in-process: resolve, plan, schedule a
  dry-run build, render the tree and drive the navigator through the controller.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

import pytest

from drvtree.control_plane import BuildScheduler, DryRunBuilder
from drvtree.main import ExitCode, cli_entrypoint
from drvtree.planning import plan
from drvtree.resolver import resolve
from drvtree.ui.tui.controller import TUIController
from drvtree.ui.tui.navigator import GraphNavigator


@pytest.mark.smoke
def test_chain_through_every_layer(chain_root: Path) -> None:
    graph, root = resolve(chain_root)
    assert (len(graph), graph.edge_count) == (3, 2)

    order = plan(graph)
    assert [graph[h].name for h in order] == ["C", "B", "A"]

    builder = DryRunBuilder()
    report = asyncio.run(BuildScheduler(graph, builder, max_jobs=2).run())
    assert report.succeeded
    assert builder.built == ["C", "B", "A"]

    navigator = GraphNavigator(graph, root)
    navigator.set_height(10)
    lines = navigator.render_lines()
    assert [(line.depth, graph[line.handle].name) for line in lines] == [
        (0, "A"),
        (1, "B"),
        (2, "C"),
    ]

    controller = TUIController(navigator)
    controller.dispatch_key("down")
    assert navigator.selected_derivation().name == "A"
    controller.dispatch_key("down")
    assert navigator.selected_derivation().name == "B"
    controller.dispatch_key("enter")
    assert [graph[h].name for h in navigator.visible_nodes()] == ["A", "B"]
    assert controller.dispatch_key("q") is True


@pytest.mark.smoke
def test_cli_entrypoint_in_process(
    tmp_path: Path, chain_root: Path, monkeypatch, capsys
) -> None:
    monkeypatch.chdir(tmp_path)
    for name in [key for key in os.environ if key.startswith("DRVTREE_")]:
        monkeypatch.delenv(name)

    assert cli_entrypoint(["tree", str(chain_root), "--no-color"]) == ExitCode.SUCCESS
    assert capsys.readouterr().out.splitlines() == ["▼ A", "  ▼ B", "      C"]

    missing = tmp_path / "missing.drv.json"
    assert cli_entrypoint(["plan", str(missing)]) == ExitCode.LOAD_ERROR
    assert "missing.drv.json" in capsys.readouterr().err
