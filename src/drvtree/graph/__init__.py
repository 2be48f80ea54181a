"""Derivation graph storage."""

from drvtree.graph.derivation_graph import DerivationGraph, GraphFrozenError, NodeHandle

__all__ = ["DerivationGraph", "GraphFrozenError", "NodeHandle"]
