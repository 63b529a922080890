"""
taskweave — runtime config loader.

File: src/taskweave/config/loader.py
Last updated: 2026-10-19

Purpose
- Build the effective config from built-in defaults, ``taskweave.toml``, the
  selected profile, ``TASKWEAVE_*`` variables and command-line overrides.

Functional requirements
- Precedence: command line > environment > profile > file > defaults.
- Environment variables are bound one-to-one to rows of ``CONFIG_FIELDS``;
  ``TASKWEAVE_PROFILE`` selects a profile when none is passed explicitly.
- ``paths.graph_file`` is resolved relative to the config file's directory.
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Final

from taskweave.config.schema import (
    CONFIG_FIELDS,
    FIELDS_BY_DOTTED,
    ConfigField,
    apply_profile_overlay,
    assert_valid_config,
    default_config,
    merge_config,
)

DEFAULT_CONFIG_FILE: Final[str] = "taskweave.toml"
PROFILE_ENV_VAR: Final[str] = "TASKWEAVE_PROFILE"

_TRUE_WORDS: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})
_FALSE_WORDS: Final[frozenset[str]] = frozenset({"0", "false", "no", "off"})


class ConfigLoadError(ValueError):
    """The config file is missing or unreadable, or an override cannot be applied."""


def load_config(
    config_path: str | Path | None = None,
    *,
    profile: str | None = None,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Return the validated effective config.

    ``config_path`` defaults to ``./taskweave.toml``; a missing default file is
    fine, a missing explicit one is a ``ConfigLoadError``. ``cli_overrides`` is
    keyed by dotted setting name, e.g. ``{"observability.log_level": "DEBUG"}``.
    """
    required = config_path is not None
    path = Path(config_path or DEFAULT_CONFIG_FILE).expanduser().resolve()
    env = os.environ if environ is None else environ

    config = assert_valid_config(merge_config(default_config(), _read_toml(path, required)))

    selected = profile if profile is not None else env.get(PROFILE_ENV_VAR)
    selected = (selected or "").strip() or None
    if selected is not None:
        config = apply_profile_overlay(config, selected)

    config = merge_config(config, _env_overrides(env))
    config = merge_config(config, _cli_overrides(cli_overrides or {}))
    config = assert_valid_config(config, active_profile=selected)
    return normalize_paths(config, base_dir=path.parent)


def normalize_paths(config: Mapping[str, object], *, base_dir: Path) -> dict[str, Any]:
    """Resolve path settings, including those inside profile overlays, against ``base_dir``."""
    resolved = merge_config({}, config)
    profiles = resolved.get("profiles")
    layers = [resolved, *(profiles.values() if isinstance(profiles, dict) else ())]
    for layer in layers:
        for field in CONFIG_FIELDS:
            section = layer.get(field.section) if isinstance(layer, dict) else None
            if field.is_path and isinstance(section, dict):
                raw = section.get(field.name)
                if isinstance(raw, str):
                    joined = base_dir / Path(raw).expanduser()
                    section[field.name] = Path(os.path.normpath(joined)).as_posix()
    return resolved


def dump_effective_config(config: Mapping[str, object]) -> str:
    """Deterministic JSON rendering used by ``taskweave config``."""
    return json.dumps(dict(config), sort_keys=True, indent=2, ensure_ascii=False)


def _read_toml(path: Path, required: bool) -> dict[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except FileNotFoundError as exc:
        if required:
            raise ConfigLoadError(f"config file not found: {path}") from exc
        return {}
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc


def _env_overrides(environ: Mapping[str, str]) -> dict[str, dict[str, object]]:
    overrides: dict[str, dict[str, object]] = {}
    for field in CONFIG_FIELDS:
        raw = environ.get(field.env)
        if raw is not None:
            overrides.setdefault(field.section, {})[field.name] = _from_env(field, raw)
    return overrides


def _from_env(field: ConfigField, raw: str) -> object:
    text = raw.strip()
    if field.kind is int:
        try:
            return int(text)
        except ValueError as exc:
            raise ConfigLoadError(f"{field.env} -> {field.dotted} must be an integer") from exc
    if field.kind is bool:
        word = text.lower()
        if word in _TRUE_WORDS or word in _FALSE_WORDS:
            return word in _TRUE_WORDS
        raise ConfigLoadError(
            f"{field.env} -> {field.dotted} must be a boolean "
            f"({'/'.join(sorted(_TRUE_WORDS | _FALSE_WORDS))})"
        )
    return text


def _cli_overrides(overrides: Mapping[str, object]) -> dict[str, dict[str, object]]:
    nested: dict[str, dict[str, object]] = {}
    for key, value in overrides.items():
        field = FIELDS_BY_DOTTED.get(key)
        if field is None:
            raise ConfigLoadError(
                f"unknown setting {key!r}; expected one of: {', '.join(sorted(FIELDS_BY_DOTTED))}"
            )
        nested.setdefault(field.section, {})[field.name] = value
    return nested


__all__ = [
    "ConfigLoadError",
    "DEFAULT_CONFIG_FILE",
    "PROFILE_ENV_VAR",
    "dump_effective_config",
    "load_config",
    "normalize_paths",
]
