"""
Daily Scheduler

Runs one job once per day at a fixed local time, and on demand.

DESIGN DECISION: At most ONE run is in flight at any moment.
The in-flight flag is checked and set in the same synchronous step
(no await in between), so two triggers on the event loop can never
both start a run. A trigger that arrives while a run is in flight is
DROPPED, not queued, and logged as `trigger_dropped`.

A failing run never stops the scheduler: every exception is caught at
the run boundary, logged, and recorded on the JobRun.
"""

import asyncio
from datetime import datetime, time, timedelta, timezone, tzinfo
from typing import Any, Awaitable, Callable, Optional

from budget_pal.errors import JobTimeoutError
from budget_pal.models.jobs import JobOutcome, JobRun, JobTrigger, SchedulerState
from budget_pal.telemetry import bind_run_context, create_run_id, get_logger

logger = get_logger(__name__)

Job = Callable[[], Awaitable[Any]]
Clock = Callable[[], datetime]


def next_run_after(now: datetime, run_at: time, tz: Optional[tzinfo] = None) -> datetime:
    """
    First occurrence of `run_at` strictly after `now`, in `tz`.

    Args:
        now: Timezone-aware current time
        run_at: Wall-clock time of day
        tz: Zone the wall-clock time is read in (default: `now`'s zone)
    """
    local = now.astimezone(tz) if tz is not None else now
    zone = local.tzinfo
    candidate = datetime.combine(local.date(), run_at, tzinfo=zone)
    if candidate <= local:
        candidate = datetime.combine(local.date() + timedelta(days=1), run_at, tzinfo=zone)
    return candidate


def seconds_until(now: datetime, then: datetime) -> float:
    """Elapsed real seconds between two aware datetimes, never negative."""
    delta = then.astimezone(timezone.utc) - now.astimezone(timezone.utc)
    return max(delta.total_seconds(), 0.0)


def system_clock(tz: Optional[tzinfo] = None) -> Clock:
    """Clock returning aware datetimes in `tz`, or the host's local zone."""
    if tz is not None:
        return lambda: datetime.now(tz)
    return lambda: datetime.now().astimezone()


class DailyScheduler:
    """
    Fires `job` every day at `run_at` and on manual request.

    Args:
        job: Zero-argument coroutine function performing one run
        run_at: Local time of day for the scheduled run
        tz: Timezone for `run_at` (default: host local zone)
        job_timeout: Seconds before a run is cancelled (None = unbounded)
        clock: Source of "now"; injectable for tests
    """

    def __init__(
        self,
        job: Job,
        run_at: time,
        tz: Optional[tzinfo] = None,
        job_timeout: Optional[float] = None,
        clock: Optional[Clock] = None,
    ):
        self._job = job
        self._run_at = run_at
        self._tz = tz
        self._job_timeout = job_timeout
        self._clock = clock or system_clock(tz)

        self._state = SchedulerState.STOPPED
        self._timer_task: Optional[asyncio.Task] = None
        self._run_tasks: set[asyncio.Task] = set()
        self._current_run: Optional[JobRun] = None
        self._last_run: Optional[JobRun] = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def state(self) -> SchedulerState:
        return self._state

    def start(self) -> None:
        """Start the daily timer. Calling start() again while running is a no-op."""
        if self._state == SchedulerState.RUNNING:
            return
        self._state = SchedulerState.RUNNING
        self._timer_task = asyncio.get_running_loop().create_task(self._timer_loop())
        logger.info(
            "scheduler_started",
            run_at=self._run_at.isoformat(timespec="minutes"),
            timezone=str(self._tz) if self._tz else "local",
        )

    async def stop(self) -> None:
        """
        Stop the timer.

        A run in flight is abandoned, not awaited.
        """
        if self._state == SchedulerState.STOPPED:
            return
        self._state = SchedulerState.STOPPED

        if self._timer_task is not None:
            self._timer_task.cancel()
            try:
                await self._timer_task
            except asyncio.CancelledError:
                pass
            self._timer_task = None

        if self._current_run is not None:
            logger.warning("job_abandoned", **self._current_run.to_log_dict())
        logger.info("scheduler_stopped")

    async def join(self) -> None:
        """Wait for runs started by run_now() or the timer to finish."""
        while self._run_tasks:
            await asyncio.gather(*list(self._run_tasks), return_exceptions=True)

    # =========================================================================
    # Triggers
    # =========================================================================

    @property
    def job_in_flight(self) -> bool:
        return self._current_run is not None

    def run_now(self) -> bool:
        """
        Start a manual run in the background.

        Returns:
            True if a run was started, False if one was already in flight
        """
        return self._spawn(JobTrigger.MANUAL)

    async def run_job(self, trigger: JobTrigger = JobTrigger.MANUAL) -> Optional[JobRun]:
        """
        Run the job now and wait for it.

        Returns:
            A copy of the finished JobRun, or None if a run was already in flight
        """
        run = self._begin(trigger)
        if run is None:
            return None
        await self._execute(run)
        return run.model_copy()

    def get_last_run_at(self) -> Optional[datetime]:
        """Start time of the most recent COMPLETED run (None before any)."""
        return self._last_run.started_at if self._last_run else None

    def get_last_run(self) -> Optional[JobRun]:
        """Copy of the most recent completed JobRun."""
        return self._last_run.model_copy() if self._last_run else None

    def get_current_run(self) -> Optional[JobRun]:
        """Copy of the run in flight, if any."""
        return self._current_run.model_copy() if self._current_run else None

    def next_run_at(self) -> datetime:
        return next_run_after(self._clock(), self._run_at, self._tz)

    # =========================================================================
    # Internals
    # =========================================================================

    def _begin(self, trigger: JobTrigger) -> Optional[JobRun]:
        """Check-and-set the in-flight flag. Must not await."""
        if self._current_run is not None:
            logger.warning(
                "trigger_dropped",
                trigger=trigger.value,
                in_flight_run_id=str(self._current_run.run_id),
            )
            return None
        self._current_run = JobRun(
            run_id=create_run_id(),
            trigger=trigger,
            started_at=self._clock(),
        )
        return self._current_run

    def _spawn(self, trigger: JobTrigger) -> bool:
        run = self._begin(trigger)
        if run is None:
            return False
        task = asyncio.get_running_loop().create_task(self._execute(run))
        self._run_tasks.add(task)
        task.add_done_callback(self._run_tasks.discard)
        return True

    async def _execute(self, run: JobRun) -> None:
        """Run the job once and record the outcome. Only cancellation propagates."""
        with bind_run_context(run.run_id, trigger=run.trigger.value):
            logger.info("job_started", started_at=run.started_at.isoformat())
            error: Optional[BaseException] = None
            try:
                if self._job_timeout is not None:
                    await asyncio.wait_for(self._job(), timeout=self._job_timeout)
                else:
                    await self._job()
            except asyncio.TimeoutError:
                error = JobTimeoutError(f"Job exceeded {self._job_timeout}s timeout")
            except asyncio.CancelledError as e:
                # Recorded as failed; cancellation still propagates to the caller
                error = e
                logger.warning("job_cancelled", started_at=run.started_at.isoformat())
                raise
            except Exception as e:
                error = e
            finally:
                run.completed_at = self._clock()
                run.outcome = JobOutcome.SUCCESS if error is None else JobOutcome.FAILED
                if error is not None:
                    run.last_error = str(error) or type(error).__name__
                    run.error_type = type(error).__name__
                self._last_run = run
                self._current_run = None

            if error is None:
                logger.info("job_completed", duration_seconds=run.duration_seconds)
            else:
                logger.error(
                    "job_failed",
                    error_type=run.error_type,
                    error=run.last_error,
                    duration_seconds=run.duration_seconds,
                    exc_info=error,
                )

    async def _timer_loop(self) -> None:
        """Sleep until each day's run time, then trigger a run."""
        floor: Optional[datetime] = None
        while True:
            now = self._clock()
            # Never fire the same slot twice if the sleep woke up early
            reference = max(now, floor) if floor is not None else now
            fire_at = next_run_after(reference, self._run_at, self._tz)
            delay = seconds_until(now, fire_at)
            logger.info("next_run_scheduled", next_run_at=fire_at.isoformat(), in_seconds=round(delay))

            await asyncio.sleep(delay)
            floor = fire_at
            self._spawn(JobTrigger.SCHEDULE)
