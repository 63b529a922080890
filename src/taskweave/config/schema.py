"""
taskweave — configuration schema and validation.

File: src/taskweave/config/schema.py
Last updated: 2026-10-19

Purpose
- Define the built-in defaults and one table row per configurable setting.
- Validate documents against that table with structured, dotted-path issues.

Functional requirements
- Sections ``paths``, ``rendering`` and ``observability`` are strict: unknown keys
  and wrong types are reported, every field is required at the top level.
- Profile overlays (built-in: quiet, debug, ci) may set any subset of fields.
- ``meta.schema_version`` mismatches carry migration guidance.
"""

from __future__ import annotations

import copy
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, Literal, TypedDict

from taskweave.constants import (
    CONFIG_SCHEMA_VERSION,
    DEFAULT_GRAPH_FILE,
    OUTPUT_PREVIEW_MAX_CHARS,
    QUESTION_TITLE_MAX_CHARS,
)

ConfigSchemaVersion: Final[int] = CONFIG_SCHEMA_VERSION
BUILTIN_PROFILE_NAMES: Final[tuple[str, ...]] = ("quiet", "debug", "ci")
SECTIONS: Final[tuple[str, ...]] = ("paths", "rendering", "observability")

_PROFILE_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_-]*$")
# Room for at least one character in front of the ellipsis.
_MIN_TEXT_LIMIT: Final[int] = 4


class PathsConfig(TypedDict):
    graph_file: str


class RenderingConfig(TypedDict):
    title_max_chars: int
    preview_max_chars: int


class ObservabilityConfig(TypedDict):
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"]
    log_format: Literal["console", "json"]
    redact_secrets: bool


class ProfileOverlay(TypedDict, total=False):
    paths: dict[str, object]
    rendering: dict[str, object]
    observability: dict[str, object]


class TaskweaveConfig(TypedDict):
    meta: dict[str, int]
    paths: PathsConfig
    rendering: RenderingConfig
    observability: ObservabilityConfig
    profiles: dict[str, ProfileOverlay]


DEFAULT_CONFIG: Final[TaskweaveConfig] = {
    "meta": {"schema_version": ConfigSchemaVersion},
    "paths": {"graph_file": DEFAULT_GRAPH_FILE.as_posix()},
    "rendering": {
        "title_max_chars": QUESTION_TITLE_MAX_CHARS,
        "preview_max_chars": OUTPUT_PREVIEW_MAX_CHARS,
    },
    "observability": {
        "log_level": "INFO",
        "log_format": "console",
        "redact_secrets": True,
    },
    "profiles": {
        "quiet": {"observability": {"log_level": "WARNING"}},
        "debug": {"observability": {"log_level": "DEBUG"}},
        "ci": {"observability": {"log_format": "json"}},
    },
}


@dataclass(frozen=True, slots=True)
class ConfigField:
    """One configurable setting: where it lives, how it is spelled in the env, its type."""

    section: str
    name: str
    env: str
    kind: type[str] | type[int] | type[bool]
    choices: tuple[str, ...] = ()
    minimum: int | None = None
    is_path: bool = False

    @property
    def dotted(self) -> str:
        return f"{self.section}.{self.name}"

    def parse(self, value: object) -> object:
        """Return the normalized value or raise ``ValueError`` with the reason."""
        if self.kind is bool:
            if not isinstance(value, bool):
                raise ValueError(f"expected boolean, got {type(value).__name__}")
            return value
        if self.kind is int:
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"expected integer, got {type(value).__name__}")
            if self.minimum is not None and value < self.minimum:
                raise ValueError(f"must be >= {self.minimum}")
            return value

        if not isinstance(value, str):
            raise ValueError(f"expected string, got {type(value).__name__}")
        text = value.strip()
        if not text:
            raise ValueError("must not be empty")
        if self.choices and text not in self.choices:
            raise ValueError(
                f"invalid value {text!r}; expected one of: {', '.join(sorted(self.choices))}"
            )
        if self.is_path and "\x00" in text:
            raise ValueError("must not contain NUL bytes")
        return text


CONFIG_FIELDS: Final[tuple[ConfigField, ...]] = (
    ConfigField("paths", "graph_file", "TASKWEAVE_PATHS_GRAPH_FILE", str, is_path=True),
    ConfigField(
        "rendering",
        "title_max_chars",
        "TASKWEAVE_RENDERING_TITLE_MAX_CHARS",
        int,
        minimum=_MIN_TEXT_LIMIT,
    ),
    ConfigField(
        "rendering",
        "preview_max_chars",
        "TASKWEAVE_RENDERING_PREVIEW_MAX_CHARS",
        int,
        minimum=_MIN_TEXT_LIMIT,
    ),
    ConfigField(
        "observability",
        "log_level",
        "TASKWEAVE_OBSERVABILITY_LOG_LEVEL",
        str,
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
    ),
    ConfigField(
        "observability",
        "log_format",
        "TASKWEAVE_OBSERVABILITY_LOG_FORMAT",
        str,
        choices=("console", "json"),
    ),
    ConfigField(
        "observability", "redact_secrets", "TASKWEAVE_OBSERVABILITY_REDACT_SECRETS", bool
    ),
)
FIELDS_BY_DOTTED: Final[dict[str, ConfigField]] = {field.dotted: field for field in CONFIG_FIELDS}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    """Validation result with normalized config when no issues were found."""

    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


class ConfigValidationError(ValueError):
    """Raised when strict config validation fails."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid config:\n{rendered or '- <root>: unknown validation failure'}")


def default_config() -> TaskweaveConfig:
    """Return a deep copy of the built-in defaults."""
    return copy.deepcopy(DEFAULT_CONFIG)


def migration_guidance(found_version: int) -> str:
    if found_version < ConfigSchemaVersion:
        return (
            f"schema version {found_version} is older than supported {ConfigSchemaVersion}; "
            "upgrade taskweave.toml to the current schema"
        )
    if found_version > ConfigSchemaVersion:
        return (
            f"schema version {found_version} is newer than supported {ConfigSchemaVersion}; "
            "upgrade the taskweave package"
        )
    return "schema version is current"


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deep-merge ``overlay`` onto a copy of ``base``; neither input is modified."""
    merged: dict[str, Any] = copy.deepcopy(dict(base))
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = merge_config(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def apply_profile_overlay(config: Mapping[str, object], profile: str | None) -> dict[str, Any]:
    """Merge the named overlay from ``config["profiles"]`` and re-validate."""
    selected = (profile or "").strip()
    if not selected:
        return merge_config({}, config)

    profiles = config.get("profiles")
    overlay = profiles.get(selected) if isinstance(profiles, Mapping) else None
    if overlay is None:
        raise ConfigValidationError(
            [ConfigValidationIssue("profiles", f"profile {selected!r} is not defined")]
        )
    if not isinstance(overlay, Mapping):
        raise ConfigValidationError(
            [ConfigValidationIssue(f"profiles.{selected}", "profile overlay must be an object")]
        )
    return assert_valid_config(merge_config(config, overlay), active_profile=selected)


def validate_config(
    config: Mapping[str, object] | object,
    *,
    active_profile: str | None = None,
) -> ConfigValidationResult:
    """Validate a whole config document; issues carry dotted paths."""
    issues: list[ConfigValidationIssue] = []
    if not isinstance(config, Mapping):
        issues.append(
            ConfigValidationIssue("<root>", f"expected object, got {type(config).__name__}")
        )
        return ConfigValidationResult(config=None, issues=tuple(issues))

    normalized = _check_document(config, issues)

    selected = (active_profile or "").strip()
    if selected:
        profiles = normalized.get("profiles", {})
        if selected not in profiles:
            issues.append(ConfigValidationIssue("profiles", f"profile {selected!r} is not defined"))
        elif not issues:
            _check_document(merge_config(normalized, profiles[selected]), issues)

    if issues:
        return ConfigValidationResult(config=None, issues=tuple(issues))
    return ConfigValidationResult(config=normalized, issues=())


def assert_valid_config(
    config: Mapping[str, object] | object,
    *,
    active_profile: str | None = None,
) -> dict[str, Any]:
    """Validate config and raise ``ConfigValidationError`` on failure."""
    result = validate_config(config, active_profile=active_profile)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


def _check_document(
    document: Mapping[str, object], issues: list[ConfigValidationIssue]
) -> dict[str, Any]:
    for key in sorted(set(document) - {"meta", "profiles", *SECTIONS}, key=str):
        issues.append(ConfigValidationIssue(str(key), "unknown field"))

    out: dict[str, Any] = {}
    if "meta" not in document:
        issues.append(ConfigValidationIssue("meta", "missing required field"))
    else:
        meta = _check_meta(document["meta"], issues)
        if meta is not None:
            out["meta"] = meta

    for name in SECTIONS:
        if name not in document:
            issues.append(ConfigValidationIssue(name, "missing required field"))
        else:
            section = _check_section(name, document[name], name, issues, partial=False)
            if section is not None:
                out[name] = section

    if "profiles" in document:
        out["profiles"] = _check_profiles(document["profiles"], issues)
    return out


def _check_meta(raw: object, issues: list[ConfigValidationIssue]) -> dict[str, int] | None:
    if not isinstance(raw, Mapping):
        issues.append(ConfigValidationIssue("meta", f"expected object, got {type(raw).__name__}"))
        return None
    for key in sorted(set(raw) - {"schema_version"}, key=str):
        issues.append(ConfigValidationIssue(f"meta.{key}", "unknown field"))

    version = raw.get("schema_version")
    if version is None:
        issues.append(ConfigValidationIssue("meta.schema_version", "missing required field"))
        return None
    if isinstance(version, bool) or not isinstance(version, int) or version < 1:
        issues.append(ConfigValidationIssue("meta.schema_version", "expected integer >= 1"))
        return None
    if version != ConfigSchemaVersion:
        issues.append(ConfigValidationIssue("meta.schema_version", migration_guidance(version)))
    return {"schema_version": version}


def _check_section(
    name: str,
    raw: object,
    path: str,
    issues: list[ConfigValidationIssue],
    *,
    partial: bool,
) -> dict[str, object] | None:
    if not isinstance(raw, Mapping):
        issues.append(ConfigValidationIssue(path, f"expected object, got {type(raw).__name__}"))
        return None

    fields = {field.name: field for field in CONFIG_FIELDS if field.section == name}
    for key in sorted(set(raw) - set(fields), key=str):
        issues.append(ConfigValidationIssue(f"{path}.{key}", "unknown field"))

    out: dict[str, object] = {}
    for key, field in fields.items():
        if key not in raw:
            if not partial:
                issues.append(ConfigValidationIssue(f"{path}.{key}", "missing required field"))
            continue
        try:
            out[key] = field.parse(raw[key])
        except ValueError as exc:
            issues.append(ConfigValidationIssue(f"{path}.{key}", str(exc)))
    return out


def _check_profiles(raw: object, issues: list[ConfigValidationIssue]) -> dict[str, Any]:
    if not isinstance(raw, Mapping):
        issues.append(
            ConfigValidationIssue("profiles", f"expected object, got {type(raw).__name__}")
        )
        return {}

    out: dict[str, Any] = {}
    for profile_name in sorted(raw, key=str):
        path = f"profiles.{profile_name}"
        overlay = raw[profile_name]
        if not isinstance(profile_name, str) or not _PROFILE_NAME_PATTERN.fullmatch(profile_name):
            issues.append(ConfigValidationIssue(path, "profile name must match ^[a-z][a-z0-9_-]*$"))
            continue
        if not isinstance(overlay, Mapping):
            issues.append(
                ConfigValidationIssue(path, f"expected object, got {type(overlay).__name__}")
            )
            continue
        for key in sorted(set(overlay) - set(SECTIONS), key=str):
            issues.append(ConfigValidationIssue(f"{path}.{key}", "unknown field"))

        checked: dict[str, object] = {}
        for section in SECTIONS:
            if section in overlay:
                fields = _check_section(
                    section, overlay[section], f"{path}.{section}", issues, partial=True
                )
                if fields is not None:
                    checked[section] = fields
        out[profile_name] = checked
    return out


__all__ = [
    "BUILTIN_PROFILE_NAMES",
    "CONFIG_FIELDS",
    "DEFAULT_CONFIG",
    "FIELDS_BY_DOTTED",
    "SECTIONS",
    "ConfigField",
    "ConfigSchemaVersion",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "ObservabilityConfig",
    "PathsConfig",
    "ProfileOverlay",
    "RenderingConfig",
    "TaskweaveConfig",
    "apply_profile_overlay",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "migration_guidance",
    "validate_config",
]
