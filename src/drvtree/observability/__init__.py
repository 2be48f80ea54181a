"""Observability helpers: per-run JSON-lines logging and the structlog bridge."""

from drvtree.observability.logging import (
    REDACTED,
    JsonLineFormatter,
    LogSession,
    configure_structlog,
    correlation_scope,
    looks_secret,
    new_run_id,
    redact_secrets,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    "REDACTED",
    "JsonLineFormatter",
    "LogSession",
    "configure_structlog",
    "correlation_scope",
    "looks_secret",
    "new_run_id",
    "redact_secrets",
    "setup_logging",
    "shutdown_logging",
]
