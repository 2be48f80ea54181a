"""Unit tests for config settings, validation and merging."""

from __future__ import annotations

import pytest

from drvtree.config import (
    SETTINGS,
    ConfigValidationError,
    config_issues,
    default_config,
    merge_config,
    migration_guidance,
    validate_config,
)
from drvtree.constants import CONFIG_SCHEMA_VERSION

pytestmark = pytest.mark.unit


def test_defaults_are_valid_and_independent_copies() -> None:
    first = default_config()
    assert config_issues(first) == ()
    assert validate_config(first) == first

    first["build"]["max_jobs"] = 99
    assert default_config()["build"]["max_jobs"] == 4


def test_every_setting_has_a_distinct_env_name() -> None:
    names = [setting.env_var for setting in SETTINGS]
    assert len(set(names)) == len(names)
    assert "DRVTREE_OBSERVABILITY_LOG_DIR" in names


def test_merge_does_not_mutate_inputs() -> None:
    base = default_config()
    merged = merge_config(base, {"ui": {"no_color": True}})

    assert merged["ui"] == {"indent_width": 2, "no_color": True}
    assert base["ui"]["no_color"] is False


@pytest.mark.parametrize(
    ("section", "key", "value", "message"),
    [
        ("build", "max_jobs", 0, "must be >= 1"),
        ("build", "max_jobs", True, "expected int"),
        ("ui", "indent_width", -1, "must be >= 0"),
        ("ui", "no_color", "yes", "expected bool"),
        ("ui", "no_color", 1, "expected bool"),
        ("resolver", "identity", "path", "expected one of: content, name"),
        ("observability", "log_level", "TRACE", "expected one of"),
        ("observability", "log_dir", "  ", "must not be empty"),
    ],
)
def test_invalid_values_report_field_paths(
    section: str, key: str, value: object, message: str
) -> None:
    config = merge_config(default_config(), {section: {key: value}})

    (issue,) = config_issues(config)
    assert issue.path == f"{section}.{key}"
    assert message in issue.message


def test_missing_and_unknown_entries_are_all_reported() -> None:
    config = default_config()
    del config["ui"]  # type: ignore[misc]
    del config["build"]["max_jobs"]  # type: ignore[misc]
    payload = merge_config(config, {"plugins": {}, "resolver": {"cache": True}})

    with pytest.raises(ConfigValidationError) as excinfo:
        validate_config(payload)

    assert {issue.path: issue.message for issue in excinfo.value.issues} == {
        "plugins": "unknown section",
        "resolver.cache": "unknown setting",
        "build.max_jobs": "missing setting",
        "ui": "missing section",
    }
    assert "- ui: missing section" in str(excinfo.value)


def test_section_must_be_a_table() -> None:
    config = merge_config(default_config(), {"build": 4})
    (issue,) = config_issues(config)
    assert (issue.path, issue.message) == ("build", "expected table, got int")


def test_schema_version_mismatch_gives_migration_guidance() -> None:
    config = merge_config(default_config(), {"meta": {"schema_version": 2}})
    (issue,) = config_issues(config)
    assert issue.path == "meta.schema_version"
    assert "newer than supported" in issue.message
    assert "older than supported" in migration_guidance(0)
    assert migration_guidance(CONFIG_SCHEMA_VERSION) == "schema version is current"
