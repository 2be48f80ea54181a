"""Configuration: ``drvtree.toml`` settings, ``DRVTREE_`` env overrides and validation."""

from drvtree.config.loader import (
    DEFAULT_CONFIG_FILE,
    ConfigLoadError,
    dump_effective_config,
    load_config,
)
from drvtree.config.schema import (
    ENV_PREFIX,
    IDENTITY_POLICIES,
    LOG_LEVELS,
    SECTIONS,
    SETTINGS,
    ConfigValidationError,
    ConfigValidationIssue,
    DrvtreeConfig,
    Setting,
    config_issues,
    default_config,
    merge_config,
    migration_guidance,
    validate_config,
)

__all__ = [
    "ConfigLoadError",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "DEFAULT_CONFIG_FILE",
    "DrvtreeConfig",
    "ENV_PREFIX",
    "IDENTITY_POLICIES",
    "LOG_LEVELS",
    "SECTIONS",
    "SETTINGS",
    "Setting",
    "config_issues",
    "default_config",
    "dump_effective_config",
    "load_config",
    "merge_config",
    "migration_guidance",
    "validate_config",
]
