"""Descriptor file loading and the load-error taxonomy.

File: src/drvtree/resolver/descriptor.py

Descriptors are JSON by default; ``.yaml``/``.yml`` files are decoded with
``yaml.safe_load``. Every failure is reported as a :class:`LoadError` naming the path.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Final

import yaml

from drvtree.constants import YAML_DESCRIPTOR_SUFFIXES
from drvtree.domain.models import DerivationValidationError, ValidationIssue, parse_derivation

if TYPE_CHECKING:
    from collections.abc import Sequence

    from drvtree.domain.models import Derivation

YAML_SUFFIXES: Final[frozenset[str]] = YAML_DESCRIPTOR_SUFFIXES


class LoadError(Exception):
    """Base class for failures while loading descriptor files."""

    def __init__(self, path: Path | str, message: str) -> None:
        self.path = Path(path)
        self.reason = message
        super().__init__(f"{self.path}: {message}")


class IoError(LoadError):
    """Descriptor file is missing or unreadable."""


class ParseError(LoadError):
    """Descriptor file is malformed or does not match the descriptor shape."""

    def __init__(
        self,
        path: Path | str,
        message: str,
        *,
        issues: Sequence[ValidationIssue] = (),
    ) -> None:
        self.issues = tuple(issues)
        super().__init__(path, message)


class ReferenceCycleError(LoadError):
    """A descriptor references another descriptor that is still being resolved."""

    def __init__(self, chain: Sequence[Path]) -> None:
        self.chain = tuple(Path(item) for item in chain)
        rendered = " -> ".join(str(item) for item in self.chain)
        super().__init__(self.chain[-1], f"descriptor reference cycle: {rendered}")


def read_descriptor(path: Path | str) -> Derivation:
    """Read and validate the descriptor stored at ``path``."""

    location = Path(path)
    try:
        raw = location.read_bytes()
    except OSError as exc:
        raise IoError(location, exc.strerror or str(exc)) from exc

    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ParseError(location, f"not valid UTF-8: {exc}") from exc

    payload = decode_descriptor(text, path=location)
    try:
        return parse_derivation(payload)
    except DerivationValidationError as exc:
        raise ParseError(location, str(exc), issues=exc.issues) from exc


def decode_descriptor(text: str, *, path: Path) -> object:
    """Decode descriptor text according to the file suffix."""

    if path.suffix.lower() in YAML_SUFFIXES:
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ParseError(path, f"invalid YAML: {exc}") from exc

    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ParseError(path, f"invalid JSON: {exc}") from exc


__all__ = [
    "IoError",
    "LoadError",
    "ParseError",
    "ReferenceCycleError",
    "YAML_SUFFIXES",
    "decode_descriptor",
    "read_descriptor",
]
