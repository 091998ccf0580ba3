"""
Structured Logging

All log output goes through structlog on top of the stdlib logging
module. Each job run binds a `run_id` through contextvars, so every
line emitted while the run is in progress carries it.
"""

import logging
import sys
from typing import Any
from uuid import UUID, uuid4

import structlog


def configure_logging(level: str = "INFO", json_logs: bool = True) -> None:
    """
    Configure stdlib logging and structlog once at startup.

    Args:
        level: Minimum level name (DEBUG, INFO, ...)
        json_logs: JSON lines when True, human-readable console otherwise
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper()),
        force=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    """Return a structlog logger named after the calling module."""
    return structlog.get_logger(name)


def create_run_id() -> UUID:
    """
    Create a new correlation ID for one job run.

    Bind it with `bind_run_context` at the start of the run.
    """
    return uuid4()


def bind_run_context(run_id: UUID, **extra: Any):
    """Context manager binding `run_id` (and extras) to all log lines inside it."""
    return structlog.contextvars.bound_contextvars(run_id=str(run_id), **extra)
