"""Observability module (structured logging)."""

from __future__ import annotations

from digipost_api_client.observability.logging import (
    SENSITIVE_KEYS,
    LogLevel,
    clear_request_context,
    configure_logging,
    generate_request_id,
    get_logger,
    get_request_id,
    mask_sensitive_values,
    set_request_id,
)


__all__ = [
    "SENSITIVE_KEYS",
    "LogLevel",
    "clear_request_context",
    "configure_logging",
    "generate_request_id",
    "get_logger",
    "get_request_id",
    "mask_sensitive_values",
    "set_request_id",
]
