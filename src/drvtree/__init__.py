"""
drvtree: derivation graph resolver and navigator

File: src/drvtree/__init__.py

Purpose
- Package root. Defines public package-level metadata and import boundaries.

Functional requirements
- Must not have side effects at import time (no config loading, no logging init).
- Must not import Textual; the interactive view is an optional extra.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
