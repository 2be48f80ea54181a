"""Utility exports for hashing and concurrency helpers."""

from drvtree.utils.concurrency import BoundedSemaphore, CancellationToken, ClaimRegistry
from drvtree.utils.hashing import canonical_json, sha256_bytes, sha256_json, sha256_text

__all__ = [
    "BoundedSemaphore",
    "CancellationToken",
    "ClaimRegistry",
    "canonical_json",
    "sha256_bytes",
    "sha256_json",
    "sha256_text",
]
