"""
drvtree: configuration settings and validation.

File: src/drvtree/config/schema.py

Purpose
- Declare every ``drvtree.toml`` setting once, in :data:`SETTINGS`; defaults, env
  variable names, type checks and path anchoring are all derived from that table.

Sections
- ``[meta]`` schema_version
- ``[resolver]`` identity
- ``[build]`` max_jobs
- ``[ui]`` indent_width, no_color
- ``[observability]`` log_level, log_dir, log_to_stdout, redact_secrets

Validation collects every problem as a ``ConfigValidationIssue(path, message)`` before
raising, and unknown sections or settings are rejected.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, Literal, TypedDict

from drvtree.constants import CONFIG_SCHEMA_VERSION

ENV_PREFIX: Final[str] = "DRVTREE_"
IDENTITY_POLICIES: Final[tuple[str, ...]] = ("name", "content")
LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")


class MetaConfig(TypedDict):
    schema_version: int


class ResolverConfig(TypedDict):
    identity: Literal["name", "content"]


class BuildConfig(TypedDict):
    max_jobs: int


class UIConfig(TypedDict):
    indent_width: int
    no_color: bool


class ObservabilityConfig(TypedDict):
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"]
    log_dir: str
    log_to_stdout: bool
    redact_secrets: bool


class DrvtreeConfig(TypedDict):
    meta: MetaConfig
    resolver: ResolverConfig
    build: BuildConfig
    ui: UIConfig
    observability: ObservabilityConfig


@dataclass(frozen=True, slots=True)
class Setting:
    """One ``[section] key`` entry of ``drvtree.toml``."""

    section: str
    key: str
    kind: type
    default: object
    choices: tuple[str, ...] = ()
    minimum: int | None = None
    is_path: bool = False
    env_override: bool = True

    @property
    def path(self) -> str:
        return f"{self.section}.{self.key}"

    @property
    def env_var(self) -> str:
        return f"{ENV_PREFIX}{self.section.upper()}_{self.key.upper()}"

    def problem(self, value: object) -> str | None:
        """Describe why ``value`` is not acceptable here, or ``None`` when it is."""
        # bool is an int subclass, so ``true`` must not pass as a job count
        if isinstance(value, bool) is not (self.kind is bool) or not isinstance(value, self.kind):
            return f"expected {self.kind.__name__}, got {type(value).__name__}"
        if isinstance(value, str):
            if not value.strip():
                return "must not be empty"
            if self.choices and value not in self.choices:
                expected = ", ".join(sorted(self.choices))
                return f"invalid value {value!r}; expected one of: {expected}"
        if self.minimum is not None and isinstance(value, int) and value < self.minimum:
            return f"must be >= {self.minimum}"
        return None


SETTINGS: Final[tuple[Setting, ...]] = (
    Setting("meta", "schema_version", int, CONFIG_SCHEMA_VERSION, minimum=1, env_override=False),
    Setting("resolver", "identity", str, "name", choices=IDENTITY_POLICIES),
    Setting("build", "max_jobs", int, 4, minimum=1),
    Setting("ui", "indent_width", int, 2, minimum=0),
    Setting("ui", "no_color", bool, False),
    Setting("observability", "log_level", str, "INFO", choices=LOG_LEVELS),
    Setting("observability", "log_dir", str, "logs/", is_path=True),
    Setting("observability", "log_to_stdout", bool, False),
    Setting("observability", "redact_secrets", bool, True),
)
SECTIONS: Final[tuple[str, ...]] = tuple(dict.fromkeys(s.section for s in SETTINGS))


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    path: str
    message: str


class ConfigValidationError(ValueError):
    """Raised with every issue found in a config payload."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        lines = "\n".join(f"- {issue.path}: {issue.message}" for issue in self.issues)
        super().__init__(f"invalid config:\n{lines}")


def default_config() -> DrvtreeConfig:
    """A fresh copy of the built-in defaults."""
    config: dict[str, dict[str, object]] = {section: {} for section in SECTIONS}
    for setting in SETTINGS:
        config[setting.section][setting.key] = setting.default
    return config  # type: ignore[return-value]


def migration_guidance(found_version: int) -> str:
    if found_version < CONFIG_SCHEMA_VERSION:
        return (
            f"schema version {found_version} is older than supported {CONFIG_SCHEMA_VERSION}; "
            "update drvtree.toml"
        )
    if found_version > CONFIG_SCHEMA_VERSION:
        return (
            f"schema version {found_version} is newer than supported {CONFIG_SCHEMA_VERSION}; "
            "upgrade drvtree"
        )
    return "schema version is current"


def merge_config(base: Mapping[str, Any], overlay: Mapping[str, Any]) -> dict[str, Any]:
    """Overlay ``[section] key`` values onto ``base`` without mutating either."""
    merged = copy.deepcopy(dict(base))
    for section, body in overlay.items():
        if isinstance(body, Mapping) and isinstance(merged.get(section), dict):
            merged[section].update(copy.deepcopy(dict(body)))
        else:
            merged[section] = copy.deepcopy(body)
    return merged


def config_issues(payload: Mapping[str, Any]) -> tuple[ConfigValidationIssue, ...]:
    """Every problem in ``payload``, in section order."""
    issues: list[ConfigValidationIssue] = []
    for name in sorted(set(payload) - set(SECTIONS)):
        issues.append(ConfigValidationIssue(name, "unknown section"))

    for section in SECTIONS:
        body = payload.get(section)
        if body is None:
            issues.append(ConfigValidationIssue(section, "missing section"))
            continue
        if not isinstance(body, Mapping):
            issues.append(
                ConfigValidationIssue(section, f"expected table, got {type(body).__name__}")
            )
            continue
        known = {s.key for s in SETTINGS if s.section == section}
        for key in sorted(set(body) - known):
            issues.append(ConfigValidationIssue(f"{section}.{key}", "unknown setting"))
        for setting in (s for s in SETTINGS if s.section == section):
            if setting.key not in body:
                issues.append(ConfigValidationIssue(setting.path, "missing setting"))
                continue
            problem = setting.problem(body[setting.key])
            if problem is None and setting.path == "meta.schema_version":
                if body[setting.key] != CONFIG_SCHEMA_VERSION:
                    problem = migration_guidance(body[setting.key])
            if problem is not None:
                issues.append(ConfigValidationIssue(setting.path, problem))
    return tuple(issues)


def validate_config(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Return ``payload`` unchanged when it is valid; raise ``ConfigValidationError`` if not."""
    issues = config_issues(payload)
    if issues:
        raise ConfigValidationError(issues)
    return dict(payload)


__all__ = [
    "ConfigValidationError",
    "ConfigValidationIssue",
    "DrvtreeConfig",
    "ENV_PREFIX",
    "IDENTITY_POLICIES",
    "LOG_LEVELS",
    "SECTIONS",
    "SETTINGS",
    "Setting",
    "config_issues",
    "default_config",
    "merge_config",
    "migration_guidance",
    "validate_config",
]
