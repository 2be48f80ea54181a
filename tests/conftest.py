"""Shared fixtures for writing derivation descriptors and building small graphs."""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path

import pytest

from drvtree.domain.models import Derivation, parse_derivation
from drvtree.graph.derivation_graph import DerivationGraph, NodeHandle

DescriptorWriter = Callable[..., Path]


def descriptor_payload(
    name: str,
    inputs: Sequence[str] = (),
    *,
    builder: str = "/bin/sh",
    system: str = "x86_64-linux",
    env: Mapping[str, str] | None = None,
) -> dict[str, object]:
    return {
        "name": name,
        "builder": builder,
        "args": ["-c", f"build {name}"],
        "env": dict(env or {"out": f"/store/{name}"}),
        "inputDrvs": {path: {"outputs": ["out"]} for path in inputs},
        "inputSrcs": [],
        "outputs": {"out": {"path": f"/store/{name}"}},
        "system": system,
    }


def make_derivation(name: str, **overrides: object) -> Derivation:
    payload = descriptor_payload(name)
    payload.update(overrides)
    return parse_derivation(payload)


def graph_from_edges(
    names: Sequence[str], edges: Sequence[tuple[str, str]] = ()
) -> tuple[DerivationGraph, dict[str, NodeHandle]]:
    """Build a mutable graph directly; ``edges`` are ``(dependent, input)`` name pairs."""
    graph = DerivationGraph()
    handles = {name: graph.add_node(make_derivation(name)) for name in names}
    for parent, child in edges:
        graph.add_edge(handles[parent], handles[child])
    return graph, handles


@pytest.fixture
def write_drv(tmp_path: Path) -> DescriptorWriter:
    """Write a JSON descriptor under ``tmp_path`` and return its path."""

    def _write(
        filename: str,
        name: str,
        inputs: Sequence[str] = (),
        **kwargs: object,
    ) -> Path:
        path = tmp_path / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = descriptor_payload(name, inputs, **kwargs)  # type: ignore[arg-type]
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def chain_root(write_drv: DescriptorWriter) -> Path:
    """A -> B -> C chain; returns the path of A."""
    write_drv("c.drv.json", "C")
    write_drv("b.drv.json", "B", ["c.drv.json"])
    return write_drv("a.drv.json", "A", ["b.drv.json"])
