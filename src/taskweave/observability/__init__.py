"""Public observability primitives: structlog configuration and correlation binding."""

from taskweave.observability.logging import (
    correlation_scope,
    redact_sensitive_fields,
    reset_logging,
    setup_logging,
)

__all__ = [
    "correlation_scope",
    "redact_sensitive_fields",
    "reset_logging",
    "setup_logging",
]
