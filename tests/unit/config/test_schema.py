"""
taskweave — unit tests for config schema validation

File: tests/unit/config/test_schema.py
Last updated: 2026-10-19

Purpose
- Validate strict config schema behavior, structured errors, and profile overlays.

What this test file should cover
- Built-in defaults validate successfully.
- Rejects unknown keys and invalid types with actionable paths.
- Profile overlays are partial and merge deterministically.
- Schema version mismatches carry migration guidance.
"""

from __future__ import annotations

import pytest

from taskweave.config.schema import (
    BUILTIN_PROFILE_NAMES,
    CONFIG_FIELDS,
    SECTIONS,
    ConfigSchemaVersion,
    ConfigValidationError,
    apply_profile_overlay,
    default_config,
    merge_config,
    migration_guidance,
    validate_config,
)

pytestmark = pytest.mark.unit


def test_default_config_validates_successfully() -> None:
    result = validate_config(default_config())

    assert result.is_valid
    assert result.config is not None
    assert sorted(result.config["profiles"]) == sorted(BUILTIN_PROFILE_NAMES)


def test_default_config_is_a_fresh_copy() -> None:
    first = default_config()
    first["rendering"]["title_max_chars"] = 10

    assert default_config()["rendering"]["title_max_chars"] == 60


def test_unknown_keys_and_bad_types_are_reported_with_paths() -> None:
    config = merge_config(
        default_config(),
        {
            "extra": {},
            "paths": {"graph_file": 7},
            "observability": {"redact_secrets": "yes", "log_format": "xml"},
        },
    )

    result = validate_config(config)

    assert not result.is_valid
    assert {(issue.path, issue.message) for issue in result.issues} == {
        ("extra", "unknown field"),
        ("paths.graph_file", "expected string, got int"),
        ("observability.redact_secrets", "expected boolean, got str"),
        (
            "observability.log_format",
            "invalid value 'xml'; expected one of: console, json",
        ),
    }


def test_missing_sections_are_required() -> None:
    config = default_config()
    del config["rendering"]  # type: ignore[misc]

    result = validate_config(config)

    assert [(issue.path, issue.message) for issue in result.issues] == [
        ("rendering", "missing required field")
    ]


def test_profile_overlays_are_partial_but_strict() -> None:
    config = merge_config(
        default_config(),
        {
            "profiles": {
                "narrow": {"rendering": {"title_max_chars": 20}},
                "broken": {"rendering": {"width": 3}},
                "Bad-Name": {},
            }
        },
    )

    result = validate_config(config)

    assert {issue.path for issue in result.issues} == {
        "profiles.broken.rendering.width",
        "profiles.Bad-Name",
    }


def test_apply_profile_overlay_merges_and_revalidates() -> None:
    quiet = apply_profile_overlay(default_config(), "quiet")

    assert quiet["observability"]["log_level"] == "WARNING"
    assert quiet["observability"]["log_format"] == "console"
    assert apply_profile_overlay(default_config(), None) == default_config()

    with pytest.raises(ConfigValidationError, match="profile 'loud' is not defined"):
        apply_profile_overlay(default_config(), "loud")


def test_merge_config_does_not_mutate_inputs() -> None:
    base = default_config()
    overlay = {"rendering": {"preview_max_chars": 12}}

    merged = merge_config(base, overlay)

    assert merged["rendering"] == {"preview_max_chars": 12, "title_max_chars": 60}
    assert base["rendering"]["preview_max_chars"] == 80


def test_schema_version_mismatch_carries_guidance() -> None:
    config = merge_config(default_config(), {"meta": {"schema_version": ConfigSchemaVersion + 1}})

    result = validate_config(config)

    assert [issue.path for issue in result.issues] == ["meta.schema_version"]
    assert "upgrade the taskweave package" in result.issues[0].message
    assert migration_guidance(ConfigSchemaVersion) == "schema version is current"


def test_validation_error_renders_every_issue() -> None:
    config = merge_config(default_config(), {"rendering": {"title_max_chars": 1}})

    with pytest.raises(ConfigValidationError) as error:
        apply_profile_overlay(config, "debug")

    assert "- rendering.title_max_chars: must be >= 4" in str(error.value)


def test_field_table_covers_every_default_setting() -> None:
    defaults = merge_config({}, default_config())

    table = {(field.section, field.name) for field in CONFIG_FIELDS}

    assert table == {(section, key) for section in SECTIONS for key in defaults[section]}
    for field in CONFIG_FIELDS:
        assert field.env == "TASKWEAVE_" + field.dotted.replace(".", "_").upper()
        assert field.parse(defaults[field.section][field.name]) is not None


@pytest.mark.parametrize(
    ("dotted", "value", "message"),
    [
        ("rendering.title_max_chars", True, "expected integer, got bool"),
        ("rendering.preview_max_chars", 3, "must be >= 4"),
        ("paths.graph_file", "   ", "must not be empty"),
        ("paths.graph_file", "a\x00b", "must not contain NUL bytes"),
        ("observability.log_level", "trace", "invalid value 'trace'"),
    ],
)
def test_field_parse_rejections(dotted: str, value: object, message: str) -> None:
    (field,) = [field for field in CONFIG_FIELDS if field.dotted == dotted]

    with pytest.raises(ValueError, match=message):
        field.parse(value)


def test_non_mapping_documents_and_sections_are_reported() -> None:
    assert [issue.path for issue in validate_config(["not", "a", "table"]).issues] == ["<root>"]

    config = merge_config(default_config(), {"rendering": 5, "profiles": {"ci": []}})
    result = validate_config(config)

    assert {(issue.path, issue.message) for issue in result.issues} == {
        ("rendering", "expected object, got int"),
        ("profiles.ci", "expected object, got list"),
    }
