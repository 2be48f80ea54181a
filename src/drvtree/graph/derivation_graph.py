"""Handle-addressed derivation graph arena.

Nodes live in a single list and are addressed by their insertion index (the *handle*).
Edges point from a dependent node to each of its inputs. An auxiliary identity index maps
the deduplication key of every node to its handle.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import TYPE_CHECKING

from drvtree.constants import GRAPH_EXPORT_SCHEMA_VERSION

if TYPE_CHECKING:
    from drvtree.domain.models import Derivation, JSONValue

NodeHandle = int


class GraphFrozenError(RuntimeError):
    """Raised when a resolved (read-only) graph is mutated."""


class DerivationGraph:
    """Directed graph of derivations with stable integer handles."""

    __slots__ = ("_nodes", "_keys", "_children", "_parents", "_index", "_frozen")

    def __init__(self) -> None:
        self._nodes: list[Derivation] = []
        self._keys: list[str] = []
        # dict-as-ordered-set keeps edge insertion order for display
        self._children: list[dict[NodeHandle, None]] = []
        self._parents: list[dict[NodeHandle, None]] = []
        self._index: dict[str, NodeHandle] = {}
        self._frozen = False

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[NodeHandle]:
        return iter(range(len(self._nodes)))

    def __contains__(self, handle: object) -> bool:
        return (
            isinstance(handle, int)
            and not isinstance(handle, bool)
            and 0 <= handle < len(self._nodes)
        )

    def __getitem__(self, handle: NodeHandle) -> Derivation:
        self._assert_handle(handle)
        return self._nodes[handle]

    @property
    def handles(self) -> tuple[NodeHandle, ...]:
        return tuple(range(len(self._nodes)))

    @property
    def edges(self) -> tuple[tuple[NodeHandle, NodeHandle], ...]:
        """All ``(dependent, input)`` pairs in handle order."""
        return tuple(
            (parent, child)
            for parent, children in enumerate(self._children)
            for child in children
        )

    @property
    def edge_count(self) -> int:
        return sum(len(children) for children in self._children)

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Mark the graph read-only; later mutations raise :class:`GraphFrozenError`."""
        self._frozen = True

    def add_node(self, derivation: Derivation, *, key: str | None = None) -> NodeHandle:
        """Insert ``derivation`` and return its handle.

        ``key`` is the identity used for deduplication lookups and defaults to the
        derivation name. Inserting a second node with an existing key is an error.
        """
        self._assert_mutable()
        identity = derivation.name if key is None else key
        if not identity:
            raise ValueError("node identity key must be non-empty")
        if identity in self._index:
            raise ValueError(f"duplicate node identity {identity!r}")

        handle = len(self._nodes)
        self._nodes.append(derivation)
        self._keys.append(identity)
        self._children.append({})
        self._parents.append({})
        self._index[identity] = handle
        return handle

    def add_edge(self, parent: NodeHandle, child: NodeHandle) -> None:
        """Add a directed edge ``parent -> child`` (``parent`` depends on ``child``)."""
        self._assert_mutable()
        self._assert_handle(parent)
        self._assert_handle(child)
        self._children[parent][child] = None
        self._parents[child][parent] = None

    def lookup(self, key: str) -> NodeHandle | None:
        """Return the handle registered under identity ``key``, if any."""
        return self._index.get(key)

    def key_of(self, handle: NodeHandle) -> str:
        self._assert_handle(handle)
        return self._keys[handle]

    def children(self, handle: NodeHandle) -> tuple[NodeHandle, ...]:
        """Direct inputs of ``handle`` in insertion order."""
        self._assert_handle(handle)
        return tuple(self._children[handle])

    def parents(self, handle: NodeHandle) -> tuple[NodeHandle, ...]:
        """Direct dependents of ``handle`` in insertion order."""
        self._assert_handle(handle)
        return tuple(self._parents[handle])

    def has_children(self, handle: NodeHandle) -> bool:
        self._assert_handle(handle)
        return bool(self._children[handle])

    def find_by_name(self, name: str) -> tuple[NodeHandle, ...]:
        return tuple(handle for handle, node in enumerate(self._nodes) if node.name == name)

    def sorted_by_name(self) -> tuple[NodeHandle, ...]:
        """Handles ordered by ``(name, handle)`` for deterministic consumers."""
        return tuple(sorted(self.handles, key=lambda handle: (self._nodes[handle].name, handle)))

    def get_inputs(self, handle: NodeHandle, *, transitive: bool = False) -> tuple[NodeHandle, ...]:
        """Return direct or transitive inputs of ``handle`` in handle order."""
        if not transitive:
            return tuple(sorted(self.children(handle)))
        return self._transitive_closure(handle, upstream=False)

    def get_dependents(
        self, handle: NodeHandle, *, transitive: bool = False
    ) -> tuple[NodeHandle, ...]:
        """Return direct or transitive dependents of ``handle`` in handle order."""
        if not transitive:
            return tuple(sorted(self.parents(handle)))
        return self._transitive_closure(handle, upstream=True)

    def serialize(self) -> dict[str, JSONValue]:
        """JSON-friendly summary: node names by handle and edges as handle pairs."""
        return {
            "schema_version": GRAPH_EXPORT_SCHEMA_VERSION,
            "nodes": [node.name for node in self._nodes],
            "edges": [[parent, child] for parent, child in self.edges],
        }

    def _transitive_closure(self, handle: NodeHandle, *, upstream: bool) -> tuple[NodeHandle, ...]:
        self._assert_handle(handle)

        adjacency = self._parents if upstream else self._children
        visited: set[NodeHandle] = set()
        pending: list[NodeHandle] = list(adjacency[handle])

        while pending:
            node = pending.pop()
            if node in visited:
                continue

            visited.add(node)
            for neighbor in adjacency[node]:
                if neighbor not in visited:
                    pending.append(neighbor)

        return tuple(sorted(visited))

    def _assert_handle(self, handle: NodeHandle) -> None:
        if isinstance(handle, bool) or not isinstance(handle, int):
            raise TypeError(f"node handle must be an int, got {type(handle).__name__}")
        if not 0 <= handle < len(self._nodes):
            raise KeyError(f"Unknown node handle: {handle}")

    def _assert_mutable(self) -> None:
        if self._frozen:
            raise GraphFrozenError("derivation graph is read-only after resolution")


__all__ = ["DerivationGraph", "GraphFrozenError", "NodeHandle"]
