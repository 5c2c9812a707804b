"""Structured logging configuration with structlog.

Every scheduled run gets its own correlation ID, so all lines logged by one
reset, sweep or maintenance job can be pulled together.
"""

import logging
import sys
import uuid
from contextvars import ContextVar, Token
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

# Correlation ID for the current scheduled run
_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str | None:
    return _correlation_id_var.get()


def new_correlation_id() -> str:
    """Start a new correlation ID for the current task and return it."""
    correlation_id = uuid.uuid4().hex
    _correlation_id_var.set(correlation_id)
    return correlation_id


def add_correlation_id(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    correlation_id = get_correlation_id()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def service_info_processor(service_name: str, service_version: str) -> Processor:
    """Processor stamping every event with the service name and version."""

    def add_service_info(
        logger: WrappedLogger,
        method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        event_dict.setdefault("service", service_name)
        event_dict.setdefault("version", service_version)
        return event_dict

    return add_service_info


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    service_name: str = "transcribe-usage",
    service_version: str = "0.1.0",
) -> None:
    """Configure structured logging for the scheduler process.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: JSON lines if True, coloured console output otherwise.
        service_name: Stamped on every event as ``service``.
        service_version: Stamped on every event as ``version``.
    """
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        add_correlation_id,
        service_info_processor(service_name, service_version),
    ]

    if json_format:
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper()),
        force=True,
    )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, usually for ``__name__``."""
    return structlog.get_logger(name)


class LogContext:
    """Bind fields such as ``job_id`` or ``user_id`` for the enclosed block.

    On exit the fields go back to whatever they were before, so contexts
    nest: a per-user block inside a per-job block keeps ``job_id`` bound.
    """

    def __init__(self, **fields: Any):
        self._fields = fields
        self._tokens: dict[str, Token[Any]] = {}

    def __enter__(self) -> "LogContext":
        self._tokens = structlog.contextvars.bind_contextvars(**self._fields)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        structlog.contextvars.reset_contextvars(**self._tokens)
        self._tokens = {}
