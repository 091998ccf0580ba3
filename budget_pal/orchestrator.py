"""
Main Orchestrator for Budget Pal

This module ties the components together and defines the one
end-to-end flow of the service:

    resolve token -> fetch transactions -> calculate report -> notify

DESIGN DECISION: The job itself does not catch errors.
Any failure (missing credential, upstream fetch, malformed data,
delivery) propagates to the scheduler, which records it on the JobRun
and keeps running. The job never half-notifies: nothing is sent unless
the whole report was computed.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from budget_pal.calculations import SpendingCalculator
from budget_pal.calculations.spending import previous_month
from budget_pal.config import Settings
from budget_pal.models.delivery import DeliveryResult
from budget_pal.notifications import Notifier
from budget_pal.scheduling import DailyScheduler
from budget_pal.scheduling.scheduler import Clock, system_clock
from budget_pal.services import (
    MessagingClient,
    PlaidTransactionService,
    TransactionSource,
    TwilioMessagingClient,
)
from budget_pal.telemetry import get_logger

logger = get_logger(__name__)


def fetch_window(today: date) -> tuple[date, date]:
    """From the first day of the previous month up to and including today."""
    return previous_month(today).replace(day=1), today


class DailySpendingJob:
    """
    One run of the daily spending report.

    Args:
        source: Where transactions come from
        calculator: Pure report builder
        notifier: Delivers the formatted report
        clock: Source of "now" in the configured timezone
    """

    def __init__(
        self,
        source: TransactionSource,
        calculator: SpendingCalculator,
        notifier: Notifier,
        clock: Optional[Clock] = None,
    ):
        self._source = source
        self._calculator = calculator
        self._notifier = notifier
        self._clock = clock or system_clock()

    async def run(self) -> DeliveryResult:
        """
        Execute the pipeline once.

        Raises:
            ConfigurationError: No access token or no usable channel
            UpstreamFetchError: The aggregator call failed
            CalculationError: A transaction could not be parsed
            DeliveryError: Every channel failed
        """
        now: datetime = self._clock()
        access_token = self._source.resolve_access_token()

        start_date, end_date = fetch_window(now.date())
        transactions = await self._source.get_transactions(access_token, start_date, end_date)

        report = self._calculator.generate_report(transactions, now)
        logger.info(
            "report_generated",
            transactions=len(transactions),
            monthly_spent=str(report.monthly_spent),
            last_month_spent=str(report.last_month_spent),
            average_daily_last_month=str(report.average_daily_last_month),
        )

        result = await self._notifier.send_report(report)
        logger.info(
            "report_delivered",
            channel=result.channel.value,
            message_id=result.message_id,
            attempts=result.attempt_count,
        )
        return result

    async def __call__(self) -> DeliveryResult:
        return await self.run()


@dataclass
class AppComponents:
    """Everything the entry point wires together."""

    source: TransactionSource
    messaging: MessagingClient
    notifier: Notifier
    job: DailySpendingJob
    scheduler: DailyScheduler


def create_app_components(
    settings: Settings,
    source: Optional[TransactionSource] = None,
    messaging: Optional[MessagingClient] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Loaded configuration, passed by reference to every component
        source: Override the Plaid transaction source (tests)
        messaging: Override the Twilio messaging client (tests)

    Returns:
        AppComponents with a stopped scheduler
    """
    tz = settings.schedule.tzinfo
    clock = system_clock(tz)

    source = source or PlaidTransactionService(settings.plaid)
    messaging = messaging or TwilioMessagingClient(settings.twilio)

    calculator = SpendingCalculator(
        recipient_name=settings.report.recipient_name,
        daily_limit=settings.report.daily_limit,
    )
    notifier = Notifier(messaging, settings.twilio, settings.notifications)
    job = DailySpendingJob(source, calculator, notifier, clock=clock)

    scheduler = DailyScheduler(
        job,
        run_at=settings.schedule.run_at_time,
        tz=tz,
        job_timeout=settings.schedule.job_timeout_seconds,
        clock=clock,
    )

    return AppComponents(
        source=source,
        messaging=messaging,
        notifier=notifier,
        job=job,
        scheduler=scheduler,
    )
