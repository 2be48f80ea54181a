"""
drvtree: planning layer

File: src/drvtree/planning/__init__.py

Purpose
- Turn a resolved derivation graph into a dependency-respecting build order.

Functional requirements
- Must reject cyclic graphs with ``CycleError`` instead of looping.

Non-functional requirements
- Must produce repeatable orders given the same descriptor set.
"""

from __future__ import annotations

from drvtree.planning.build_order import CycleError, detect_cycles, plan, runnable

__all__ = ["CycleError", "detect_cycles", "plan", "runnable"]
