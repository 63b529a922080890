"""Structured logging setup built on structlog, with correlation and redaction."""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator, Mapping, MutableMapping
from contextlib import contextmanager
from typing import IO, Any, Final

import structlog

_REDACTED_VALUE: Final[str] = "***REDACTED***"
_LOG_FORMATS: Final[tuple[str, ...]] = ("console", "json")

_SENSITIVE_KEY_TERMS: Final[tuple[str, ...]] = (
    "secret",
    "token",
    "password",
    "passphrase",
    "api_key",
    "apikey",
    "authorization",
    "credential",
)


def setup_logging(
    observability_config: Mapping[str, object] | None = None,
    *,
    stream: IO[str] | None = None,
) -> Any:
    """Configure structlog process-wide and return a logger for ``taskweave``.

    Parameters
    ----------
    observability_config:
        Mapping compatible with the ``[observability]`` section of ``taskweave.toml``
        (``log_level``, ``log_format``, ``redact_secrets``).
    stream:
        Destination for rendered lines; defaults to ``sys.stderr`` so command
        output on stdout stays machine-readable.
    """

    cfg = dict(observability_config or {})
    raw_level = cfg.get("log_level", "INFO")
    level = _parse_log_level(raw_level if isinstance(raw_level, (int, str)) else "INFO")
    log_format = _validate_log_format(cfg.get("log_format", "console"))
    redact_enabled = bool(cfg.get("redact_secrets", True))

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if redact_enabled:
        processors.append(redact_sensitive_fields)
    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.WriteLoggerFactory(file=stream or sys.stderr),
        cache_logger_on_first_use=False,
    )
    return structlog.get_logger("taskweave")


def reset_logging() -> None:
    """Restore structlog defaults and drop bound correlation fields."""
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


@contextmanager
def correlation_scope(**fields: str | None) -> Iterator[None]:
    """Temporarily bind correlation fields (e.g. ``command``, ``task_id``) to log events."""
    bound = {_validate_correlation_key(key): value for key, value in fields.items() if value}
    with structlog.contextvars.bound_contextvars(**bound):
        yield


def redact_sensitive_fields(
    _logger: object, _method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """structlog processor that masks values of secret-looking keys."""
    for key in list(event_dict):
        if _requires_redaction_for_key(key):
            event_dict[key] = _REDACTED_VALUE
    return event_dict


def _requires_redaction_for_key(key: str) -> bool:
    key_lower = key.lower()
    return any(term in key_lower for term in _SENSITIVE_KEY_TERMS)


def _parse_log_level(value: int | str) -> int:
    if isinstance(value, int):
        return value

    normalized = value.strip().upper()
    parsed = logging.getLevelName(normalized)
    if isinstance(parsed, int):
        return parsed

    raise ValueError(f"unsupported logging level {value!r}")


def _validate_log_format(value: object) -> str:
    if not isinstance(value, str) or value.strip().lower() not in _LOG_FORMATS:
        raise ValueError(f"log_format must be one of {', '.join(_LOG_FORMATS)}, got {value!r}")
    return value.strip().lower()


def _validate_correlation_key(value: str) -> str:
    normalized = value.strip()
    if not normalized:
        raise ValueError("correlation key must not be empty")
    return normalized


__all__ = [
    "correlation_scope",
    "redact_sensitive_fields",
    "reset_logging",
    "setup_logging",
]
