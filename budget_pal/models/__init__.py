"""
Data Models Package

Pydantic models for transactions, reports, deliveries and job runs.
"""

from budget_pal.models.delivery import (
    AttemptOutcome,
    Channel,
    DeliveryAddress,
    DeliveryAttempt,
    DeliveryResult,
    DeliveryState,
    MessageStatus,
    SentMessage,
)
from budget_pal.models.jobs import (
    JobOutcome,
    JobRun,
    JobTrigger,
    SchedulerState,
)
from budget_pal.models.spending import (
    Account,
    SpendingReport,
    Transaction,
)

__all__ = [
    # Spending models
    "Account",
    "SpendingReport",
    "Transaction",
    # Delivery models
    "AttemptOutcome",
    "Channel",
    "DeliveryAddress",
    "DeliveryAttempt",
    "DeliveryResult",
    "DeliveryState",
    "MessageStatus",
    "SentMessage",
    # Job models
    "JobOutcome",
    "JobRun",
    "JobTrigger",
    "SchedulerState",
]
