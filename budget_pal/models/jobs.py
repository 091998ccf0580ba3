"""
Job Run Models

A JobRun describes one execution of the fetch -> calculate -> notify
pipeline. The scheduler keeps a single mutable instance per run and
exposes copies of it.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class SchedulerState(str, Enum):
    """Lifecycle of the scheduler's timer."""
    STOPPED = "stopped"
    RUNNING = "running"


class JobTrigger(str, Enum):
    """What started a run."""
    SCHEDULE = "schedule"
    MANUAL = "manual"


class JobOutcome(str, Enum):
    """Terminal result of a run."""
    SUCCESS = "success"
    FAILED = "failed"


class JobRun(BaseModel):
    """
    One execution of the daily job.

    `completed_at` and `outcome` stay None while the run is in flight.
    """

    run_id: UUID = Field(
        default_factory=uuid4,
        description="Correlation ID bound to every log line of the run"
    )
    trigger: JobTrigger = Field(
        default=JobTrigger.SCHEDULE,
        description="What started the run"
    )
    started_at: datetime
    completed_at: Optional[datetime] = None
    outcome: Optional[JobOutcome] = None
    last_error: Optional[str] = Field(
        default=None,
        description="String form of the error that failed the run"
    )
    error_type: Optional[str] = Field(
        default=None,
        description="Class name of that error"
    )

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    def to_log_dict(self) -> dict:
        """Flatten for structured logging."""
        return {
            "run_id": str(self.run_id),
            "trigger": self.trigger.value,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "outcome": self.outcome.value if self.outcome else None,
            "error_type": self.error_type,
            "last_error": self.last_error,
        }
