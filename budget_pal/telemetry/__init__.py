"""Structured logging package."""

from budget_pal.telemetry.logger import (
    bind_run_context,
    configure_logging,
    create_run_id,
    get_logger,
)

__all__ = ["bind_run_context", "configure_logging", "create_run_id", "get_logger"]
