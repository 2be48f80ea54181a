"""
drvtree: runtime config loader.

File: src/drvtree/config/loader.py

Purpose
- Build the effective config in four layers, later ones winning: built-in defaults,
  ``drvtree.toml``, ``DRVTREE_<SECTION>_<KEY>`` environment variables, CLI flags.

Notes
- The file layer is validated on its own first so a bad file is reported as such even
  when an env var or flag would have masked the bad value.
- ``observability.log_dir`` is anchored at the directory holding the config file.
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Final

from drvtree.config.schema import (
    SETTINGS,
    Setting,
    default_config,
    merge_config,
    validate_config,
)

DEFAULT_CONFIG_FILE: Final[str] = "drvtree.toml"

_TRUE_WORDS: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})
_FALSE_WORDS: Final[frozenset[str]] = frozenset({"0", "false", "no", "off"})


class ConfigLoadError(ValueError):
    """The config file is missing or unreadable, or an override has the wrong type."""


def load_config(
    config_path: str | Path | None = None,
    *,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Load the effective config.

    ``config_path`` defaults to ``drvtree.toml`` in the working directory, which may be
    absent; an explicitly named file must exist. ``cli_overrides`` maps dotted
    ``section.key`` names to values, and ``None`` values are ignored.
    """

    explicit = config_path is not None
    path = (Path(config_path).expanduser() if explicit else Path(DEFAULT_CONFIG_FILE)).resolve()

    config = validate_config(merge_config(default_config(), _read_toml(path, required=explicit)))
    config = merge_config(config, _env_layer(os.environ if environ is None else environ))
    config = validate_config(merge_config(config, _cli_layer(cli_overrides or {})))

    for setting in SETTINGS:
        if setting.is_path:
            section = config[setting.section]
            section[setting.key] = _anchor(section[setting.key], path.parent)
    return config


def dump_effective_config(config: Mapping[str, object]) -> str:
    """Stable, indented JSON rendering printed by ``drvtree config``."""
    return json.dumps(config, sort_keys=True, indent=2, ensure_ascii=False)


def _read_toml(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.is_file():
        if required:
            raise ConfigLoadError(f"config file not found: {path}")
        return {}
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigLoadError(f"cannot read config file {path}: {exc}") from exc


def _env_layer(environ: Mapping[str, str]) -> dict[str, dict[str, object]]:
    layer: dict[str, dict[str, object]] = {}
    for setting in SETTINGS:
        raw = environ.get(setting.env_var) if setting.env_override else None
        if raw is not None:
            layer.setdefault(setting.section, {})[setting.key] = _from_env(setting, raw.strip())
    return layer


def _from_env(setting: Setting, raw: str) -> object:
    if setting.kind is bool:
        if raw.lower() in _TRUE_WORDS:
            return True
        if raw.lower() in _FALSE_WORDS:
            return False
        raise ConfigLoadError(
            f"{setting.env_var} ({setting.path}) must be one of "
            f"{'/'.join(sorted(_TRUE_WORDS | _FALSE_WORDS))}, got {raw!r}"
        )
    if setting.kind is int:
        try:
            return int(raw)
        except ValueError as exc:
            raise ConfigLoadError(
                f"{setting.env_var} ({setting.path}) must be an integer, got {raw!r}"
            ) from exc
    return raw


def _cli_layer(overrides: Mapping[str, object]) -> dict[str, dict[str, object]]:
    layer: dict[str, dict[str, object]] = {}
    for dotted, value in overrides.items():
        if value is None:
            continue
        section, _, key = dotted.partition(".")
        if not section or not key:
            raise ConfigLoadError(f"override name must look like section.key, got {dotted!r}")
        layer.setdefault(section, {})[key] = value
    return layer


def _anchor(raw: str, base_dir: Path) -> str:
    candidate = Path(os.path.expandvars(raw)).expanduser()
    if not candidate.is_absolute():
        candidate = base_dir / candidate
    return Path(os.path.normpath(candidate)).as_posix()


__all__ = ["ConfigLoadError", "DEFAULT_CONFIG_FILE", "dump_effective_config", "load_config"]
