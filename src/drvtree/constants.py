"""Stable constants shared across drvtree layers."""

from __future__ import annotations

from typing import Final

# Schema versions for persisted contracts.
CONFIG_SCHEMA_VERSION: Final[int] = 1
GRAPH_EXPORT_SCHEMA_VERSION: Final[int] = 1

# Descriptor file handling.
YAML_DESCRIPTOR_SUFFIXES: Final[frozenset[str]] = frozenset({".yaml", ".yml"})

# Navigator rendering.
DEFAULT_INDENT_WIDTH: Final[int] = 2
EXPANDED_MARKER: Final[str] = "▼ "
COLLAPSED_MARKER: Final[str] = "▶ "
LEAF_MARKER: Final[str] = "  "
TREE_TITLE: Final[str] = "Derivation Tree"

# Per-run logs land in <log_dir>/<run_id>/LOG_FILENAME.
LOG_FILENAME: Final[str] = "drvtree.jsonl"
LOGGER_NAME: Final[str] = "drvtree"

__all__ = [
    "COLLAPSED_MARKER",
    "CONFIG_SCHEMA_VERSION",
    "DEFAULT_INDENT_WIDTH",
    "EXPANDED_MARKER",
    "GRAPH_EXPORT_SCHEMA_VERSION",
    "LEAF_MARKER",
    "LOGGER_NAME",
    "LOG_FILENAME",
    "TREE_TITLE",
    "YAML_DESCRIPTOR_SUFFIXES",
]
