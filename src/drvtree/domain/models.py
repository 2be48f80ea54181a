"""Derivation descriptor model with strict validation and canonical serialization.

File: src/drvtree/domain/models.py

Descriptors are read from store-format JSON/YAML records. Field names on disk follow the
store layout (``inputDrvs``, ``inputSrcs``, ``dynamicOutputs``); unknown fields are ignored.
Parsed values are frozen: mappings are exposed through read-only proxies.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Final

from drvtree.utils.hashing import canonical_json, sha256_json

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

_REQUIRED_FIELDS: Final[frozenset[str]] = frozenset(
    {"name", "builder", "args", "env", "inputDrvs", "inputSrcs", "outputs", "system"}
)


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """Single descriptor validation failure."""

    path: str
    message: str


class DerivationValidationError(ValueError):
    """Raised when a payload does not match the derivation descriptor shape."""

    def __init__(self, issues: tuple[ValidationIssue, ...]) -> None:
        self.issues = tuple(issues)
        if not self.issues:
            rendered = "unknown validation failure"
        else:
            rendered = "; ".join(f"{item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid derivation: {rendered}")


@dataclass(frozen=True, slots=True)
class InputRef:
    """Outputs consumed from one input derivation."""

    outputs: tuple[str, ...] = ()
    dynamic_outputs: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def to_dict(self) -> dict[str, JSONValue]:
        dynamic = {key: self.dynamic_outputs[key] for key in sorted(self.dynamic_outputs)}
        return {"outputs": list(self.outputs), "dynamicOutputs": dynamic}


@dataclass(frozen=True, slots=True)
class DerivationOutput:
    path: str

    def to_dict(self) -> dict[str, JSONValue]:
        return {"path": self.path}


@dataclass(frozen=True, slots=True)
class Derivation:
    """A named unit of build work: builder invocation, inputs and declared outputs."""

    name: str
    builder: str
    system: str
    args: tuple[str, ...] = ()
    env: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    input_derivations: Mapping[str, InputRef] = field(
        default_factory=lambda: MappingProxyType({})
    )
    input_sources: tuple[str, ...] = ()
    outputs: Mapping[str, DerivationOutput] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def input_paths(self) -> tuple[str, ...]:
        """Referenced descriptor paths in deterministic order."""
        return tuple(sorted(self.input_derivations))

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Derivation:
        return parse_derivation(data)

    def to_dict(self) -> dict[str, JSONValue]:
        """Serialize back to the store-format mapping."""
        return {
            "name": self.name,
            "builder": self.builder,
            "args": list(self.args),
            "env": {key: self.env[key] for key in sorted(self.env)},
            "inputDrvs": {
                path: self.input_derivations[path].to_dict() for path in self.input_paths
            },
            "inputSrcs": list(self.input_sources),
            "outputs": {key: self.outputs[key].to_dict() for key in sorted(self.outputs)},
            "system": self.system,
        }

    def to_json(self) -> str:
        return canonical_json(self.to_dict())

    def content_hash(self) -> str:
        """SHA-256 of the canonical JSON form; equal for semantically identical records."""
        return sha256_json(self.to_dict())


class _IssueCollector:
    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[ValidationIssue] = []

    def add(self, path: str, message: str) -> None:
        self._items.append(ValidationIssue(path=path, message=message))

    def items(self) -> tuple[ValidationIssue, ...]:
        return tuple(self._items)

    @property
    def has_issues(self) -> bool:
        return bool(self._items)


def parse_derivation(payload: object) -> Derivation:
    """Validate a decoded descriptor payload and build a :class:`Derivation`.

    All issues are collected before raising so a malformed file reports every problem
    at once.
    """

    issues = _IssueCollector()
    root = _as_object(payload, "<root>", issues)
    if root is None:
        raise DerivationValidationError(issues.items())

    for key in sorted(_REQUIRED_FIELDS):
        if key not in root:
            issues.add(key, "missing required field")

    name = _as_str(root["name"], "name", issues) if "name" in root else None
    # only the name must be non-blank; builder, system and output paths may be empty
    builder = (
        _as_str(root["builder"], "builder", issues, allow_empty=True) if "builder" in root else None
    )
    system = (
        _as_str(root["system"], "system", issues, allow_empty=True) if "system" in root else None
    )
    args = _as_str_tuple(root.get("args", ()), "args", issues)
    env = _as_str_mapping(root.get("env", {}), "env", issues)
    input_sources = _as_str_tuple(root.get("inputSrcs", ()), "inputSrcs", issues)
    input_derivations = _parse_input_derivations(root.get("inputDrvs", {}), issues)
    outputs = _parse_outputs(root.get("outputs", {}), issues)

    if issues.has_issues or name is None or builder is None or system is None:
        raise DerivationValidationError(issues.items())

    return Derivation(
        name=name,
        builder=builder,
        system=system,
        args=args,
        env=MappingProxyType(env),
        input_derivations=MappingProxyType(input_derivations),
        input_sources=input_sources,
        outputs=MappingProxyType(outputs),
    )


def _parse_input_derivations(value: object, issues: _IssueCollector) -> dict[str, InputRef]:
    parsed = _as_object(value, "inputDrvs", issues)
    if parsed is None:
        return {}

    out: dict[str, InputRef] = {}
    for path in sorted(parsed):
        entry_path = f"inputDrvs.{path}"
        if not path.strip():
            issues.add(entry_path, "descriptor path must not be empty")
            continue
        entry = _as_object(parsed[path], entry_path, issues)
        if entry is None:
            continue
        if "outputs" not in entry:
            issues.add(f"{entry_path}.outputs", "missing required field")
        wanted = _as_str_tuple(entry.get("outputs", ()), f"{entry_path}.outputs", issues)
        dynamic = _as_str_mapping(
            entry.get("dynamicOutputs", {}), f"{entry_path}.dynamicOutputs", issues
        )
        out[path] = InputRef(outputs=wanted, dynamic_outputs=MappingProxyType(dynamic))
    return out


def _parse_outputs(value: object, issues: _IssueCollector) -> dict[str, DerivationOutput]:
    parsed = _as_object(value, "outputs", issues)
    if parsed is None:
        return {}

    out: dict[str, DerivationOutput] = {}
    for output_name in sorted(parsed):
        entry_path = f"outputs.{output_name}"
        entry = _as_object(parsed[output_name], entry_path, issues)
        if entry is None:
            continue
        if "path" not in entry:
            issues.add(f"{entry_path}.path", "missing required field")
            continue
        output_path = _as_str(entry["path"], f"{entry_path}.path", issues, allow_empty=True)
        if output_path is not None:
            out[output_name] = DerivationOutput(path=output_path)
    return out


def _as_object(value: object, path: str, issues: _IssueCollector) -> dict[str, object] | None:
    if not isinstance(value, Mapping):
        issues.add(path, f"expected object, got {type(value).__name__}")
        return None
    out: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            issues.add(path, f"object key must be string, got {type(key).__name__}")
            continue
        out[key] = item
    return out


def _as_str(
    value: object, path: str, issues: _IssueCollector, *, allow_empty: bool = False
) -> str | None:
    if not isinstance(value, str):
        issues.add(path, f"expected string, got {type(value).__name__}")
        return None
    if not allow_empty and not value.strip():
        issues.add(path, "must not be empty")
        return None
    return value


def _as_str_tuple(value: object, path: str, issues: _IssueCollector) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        issues.add(path, f"expected array, got {type(value).__name__}")
        return ()
    parsed: list[str] = []
    for index, item in enumerate(value):
        if not isinstance(item, str):
            issues.add(f"{path}[{index}]", f"expected string, got {type(item).__name__}")
            continue
        parsed.append(item)
    return tuple(parsed)


def _as_str_mapping(value: object, path: str, issues: _IssueCollector) -> dict[str, str]:
    parsed = _as_object(value, path, issues)
    if parsed is None:
        return {}
    out: dict[str, str] = {}
    for key in sorted(parsed):
        item = parsed[key]
        if not isinstance(item, str):
            issues.add(f"{path}.{key}", f"expected string, got {type(item).__name__}")
            continue
        out[key] = item
    return out


__all__ = [
    "Derivation",
    "DerivationOutput",
    "DerivationValidationError",
    "InputRef",
    "JSONValue",
    "ValidationIssue",
    "parse_derivation",
]
