"""Structured logging for the usage services."""

from .config import (
    LogContext,
    configure_logging,
    get_correlation_id,
    get_logger,
    new_correlation_id,
)

__all__ = [
    "LogContext",
    "configure_logging",
    "get_correlation_id",
    "get_logger",
    "new_correlation_id",
]
