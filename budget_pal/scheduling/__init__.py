"""Scheduling package."""

from budget_pal.scheduling.scheduler import (
    DailyScheduler,
    next_run_after,
    seconds_until,
    system_clock,
)

__all__ = [
    "DailyScheduler",
    "next_run_after",
    "seconds_until",
    "system_clock",
]
