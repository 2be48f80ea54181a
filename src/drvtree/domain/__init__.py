"""Domain model exports."""

from drvtree.domain.models import (
    Derivation,
    DerivationOutput,
    DerivationValidationError,
    InputRef,
    ValidationIssue,
    parse_derivation,
)

__all__ = [
    "Derivation",
    "DerivationOutput",
    "DerivationValidationError",
    "InputRef",
    "ValidationIssue",
    "parse_derivation",
]
