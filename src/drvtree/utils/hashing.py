"""
drvtree: hashing utilities

File: src/drvtree/utils/hashing.py

Purpose
- Deterministic SHA-256 helpers used for content-based derivation identity.

Non-functional requirements
- Standard library only; canonical JSON so digests are stable across runs and platforms.
"""

from __future__ import annotations

import hashlib
import json
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

__all__ = [
    "canonical_json",
    "sha256_bytes",
    "sha256_json",
    "sha256_text",
]


def sha256_bytes(data: bytes) -> str:
    """Return SHA-256 hex digest for raw bytes."""

    return hashlib.sha256(data).hexdigest()


def sha256_text(text: str, *, encoding: str = "utf-8") -> str:
    """Return SHA-256 hex digest for text encoded with ``encoding``."""

    return sha256_bytes(text.encode(encoding))


def canonical_json(payload: Mapping[str, object]) -> str:
    """Serialize ``payload`` with sorted keys and compact separators."""

    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def sha256_json(payload: Mapping[str, object]) -> str:
    """Return SHA-256 hex digest of the canonical JSON form of ``payload``."""

    return sha256_text(canonical_json(payload))
