"""Deterministic leaves-first build ordering over a derivation graph."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence, Set
from heapq import heapify, heappop, heappush
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from drvtree.graph.derivation_graph import DerivationGraph, NodeHandle


class CycleError(ValueError):
    """Raised when a dependency cycle is detected in the derivation graph."""

    cycles: tuple[tuple[str, ...], ...]

    def __init__(self, cycles: Iterable[Sequence[str]]) -> None:
        normalized: tuple[tuple[str, ...], ...] = tuple(tuple(path) for path in cycles)
        self.cycles = normalized

        if not normalized:
            message = "Derivation graph contains at least one cycle."
        else:
            preview = ", ".join(" -> ".join(path) for path in normalized[:3])
            suffix = "..." if len(normalized) > 3 else ""
            message = f"Derivation graph contains cycle(s): {preview}{suffix}"
        super().__init__(message)


def plan(graph: DerivationGraph) -> tuple[NodeHandle, ...]:
    """Return a topological build order, inputs before dependents, or raise ``CycleError``.

    Ready nodes are released in ``(name, handle)`` order so the result only depends on
    the node/edge set, not on resolution order.
    """
    pending_inputs: dict[NodeHandle, int] = {
        handle: len(graph.children(handle)) for handle in graph
    }
    ready: list[tuple[str, NodeHandle]] = [
        (graph[handle].name, handle) for handle, count in pending_inputs.items() if count == 0
    ]
    heapify(ready)

    order: list[NodeHandle] = []
    while ready:
        _, handle = heappop(ready)
        order.append(handle)

        for dependent in graph.parents(handle):
            pending_inputs[dependent] -= 1
            if pending_inputs[dependent] == 0:
                heappush(ready, (graph[dependent].name, dependent))

    if len(order) != len(graph):
        raise CycleError(detect_cycles(graph))

    return tuple(order)


def detect_cycles(graph: DerivationGraph) -> tuple[tuple[str, ...], ...]:
    """
    Detect directed cycles.

    Returns cycle paths as closed paths of node names, e.g. ``("a", "b", "a")``.
    """
    state: dict[NodeHandle, int] = {}
    stack: list[NodeHandle] = []
    stack_index: dict[NodeHandle, int] = {}
    cycles: dict[tuple[str, ...], None] = {}

    for start in graph.sorted_by_name():
        if state.get(start, 0) != 0:
            continue

        state[start] = 1
        stack.append(start)
        stack_index[start] = len(stack) - 1
        frames: list[tuple[NodeHandle, Iterator[NodeHandle]]] = [
            (start, iter(graph.get_inputs(start)))
        ]

        while frames:
            node, child_iter = frames[-1]

            try:
                child = next(child_iter)
            except StopIteration:
                frames.pop()
                state[node] = 2
                stack.pop()
                del stack_index[node]
                continue

            child_state = state.get(child, 0)
            if child_state == 0:
                state[child] = 1
                stack_index[child] = len(stack)
                stack.append(child)
                frames.append((child, iter(graph.get_inputs(child))))
                continue

            if child_state == 1:
                start_index = stack_index[child]
                cycle = tuple(graph[item].name for item in [*stack[start_index:], child])
                cycles[_canonicalize_cycle(cycle)] = None

    return tuple(sorted(cycles))


def runnable(graph: DerivationGraph, completed: Set[NodeHandle]) -> tuple[NodeHandle, ...]:
    """
    Return nodes ready to build.

    A node is runnable when it is not already completed and all of its inputs are present
    in ``completed``.
    """
    done = set(completed)
    ready: list[NodeHandle] = []
    for handle in graph.sorted_by_name():
        if handle in done:
            continue
        if all(child in done for child in graph.children(handle)):
            ready.append(handle)
    return tuple(ready)


def _canonicalize_cycle(cycle: Sequence[str]) -> tuple[str, ...]:
    if len(cycle) < 2:
        raise ValueError("Cycle path must contain at least two nodes.")

    core = tuple(cycle[:-1])
    if len(core) == 1:
        return (core[0], core[0])

    best = core
    for offset in range(1, len(core)):
        rotated = core[offset:] + core[:offset]
        if rotated < best:
            best = rotated

    return best + (best[0],)


__all__ = ["CycleError", "detect_cycles", "plan", "runnable"]
