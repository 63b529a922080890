"""
taskweave config package public API.

File: src/taskweave/config/__init__.py
Last updated: 2026-10-19

Purpose
- Export config loading/validation entrypoints and public error types.

Functional requirements
- Support loading from ``taskweave.toml`` + ``TASKWEAVE_`` env overrides.
- Fail fast with clear structured validation/load errors.
"""

from taskweave.config.loader import (
    DEFAULT_CONFIG_FILE,
    PROFILE_ENV_VAR,
    ConfigLoadError,
    dump_effective_config,
    load_config,
    normalize_paths,
)
from taskweave.config.schema import (
    BUILTIN_PROFILE_NAMES,
    CONFIG_FIELDS,
    DEFAULT_CONFIG,
    ConfigField,
    ConfigSchemaVersion,
    ConfigValidationError,
    ConfigValidationIssue,
    ConfigValidationResult,
    ProfileOverlay,
    TaskweaveConfig,
    apply_profile_overlay,
    assert_valid_config,
    default_config,
    merge_config,
    migration_guidance,
    validate_config,
)

__all__ = [
    "BUILTIN_PROFILE_NAMES",
    "CONFIG_FIELDS",
    "ConfigField",
    "ConfigLoadError",
    "ConfigSchemaVersion",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "DEFAULT_CONFIG_FILE",
    "PROFILE_ENV_VAR",
    "ProfileOverlay",
    "TaskweaveConfig",
    "apply_profile_overlay",
    "assert_valid_config",
    "default_config",
    "dump_effective_config",
    "load_config",
    "merge_config",
    "migration_guidance",
    "normalize_paths",
    "validate_config",
]
