"""
Spending Notifier

Converts a SpendingReport into text and delivers it despite two kinds
of trouble:

1. ADDRESS FORMAT AMBIGUITY - the provider may reject one encoding of a
   number and accept another. Every (source variant, destination variant)
   pair is tried in a fixed order until one is accepted.
2. CHANNEL OUTAGES - if a channel cannot deliver at all, the next channel
   in the configured fallback order is tried.

Error classification is an explicit function:

    ProviderError 21211/21212 or "invalid ... number|address"  -> RetryableInvalidAddress
    anything else                                               -> FatalDeliveryError

RetryableInvalidAddress moves to the next pair. FatalDeliveryError stops
the sequence for that channel immediately.
"""

import re
from typing import Optional, Sequence

from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from budget_pal.config.settings import NotificationSettings, TwilioSettings
from budget_pal.errors import (
    BudgetPalError,
    ConfigurationError,
    DeliveryError,
    FatalDeliveryError,
    ProviderError,
    RetryableInvalidAddress,
)
from budget_pal.models.delivery import (
    AttemptOutcome,
    Channel,
    DeliveryAttempt,
    DeliveryResult,
    DeliveryState,
    MessageStatus,
)
from budget_pal.models.spending import SpendingReport
from budget_pal.notifications.addresses import build_address, candidate_pairs, mask_address
from budget_pal.services.messaging.interface import MessagingClient
from budget_pal.telemetry import get_logger

logger = get_logger(__name__)

# Twilio: 21211 invalid 'To' number, 21212 invalid 'From' number
INVALID_ADDRESS_CODES = frozenset({21211, 21212})
INVALID_ADDRESS_PATTERN = re.compile(
    r"invalid\b.*\b(number|address)|not a valid phone number|To number",
    re.IGNORECASE,
)

# Channels whose sends are followed by a delivery status query
STATUS_CONFIRMED_CHANNELS = frozenset({Channel.WHATSAPP})

MESSAGE_TEMPLATE = (
    "Good morning {name}!\n"
    "\n"
    "Today's spending limit: ${daily_limit:.2f}\n"
    "This month spent: ${monthly_spent:.2f}\n"
    "Last month total: ${last_month_spent:.2f}\n"
    "Daily average last month: ${average_daily:.2f}\n"
    "\n"
    "Have a great day!"
)

TEST_MESSAGE = "hello"


def classify_delivery_error(
    error: BaseException,
    source: Optional[str] = None,
    destination: Optional[str] = None,
) -> DeliveryError:
    """
    Classify a failed send.

    Returns:
        RetryableInvalidAddress if the provider rejected the address format,
        FatalDeliveryError for everything else (including non-provider errors)
    """
    if isinstance(error, DeliveryError):
        return error

    if isinstance(error, ProviderError):
        text = error.provider_message or ""
        if error.code in INVALID_ADDRESS_CODES or INVALID_ADDRESS_PATTERN.search(text):
            return RetryableInvalidAddress(
                str(error), source=source, destination=destination, cause=error,
            )

    return FatalDeliveryError(
        str(error) or type(error).__name__,
        source=source,
        destination=destination,
        cause=error,
    )


class DeliveryStateMachine:
    """
    Drives one attempt sequence for one channel.

    IDLE -> ATTEMPTING(pair_i) -> SUCCESS | next pair | ABORTED
    """

    def __init__(
        self,
        client: MessagingClient,
        channel: Channel,
        confirm_delivery: bool,
        status_attempts: int = 3,
        status_backoff_seconds: float = 1.0,
    ):
        self._client = client
        self._channel = channel
        self._confirm_delivery = confirm_delivery
        self._status_attempts = status_attempts
        self._status_backoff_seconds = status_backoff_seconds

    async def run(
        self,
        message: str,
        pairs: Sequence[tuple[str, str]],
    ) -> DeliveryResult:
        """
        Attempt each pair in order until one is accepted or the sequence aborts.

        Never raises for provider errors; the outcome is in the result.
        """
        result = DeliveryResult(channel=self._channel)

        for index, (source, destination) in enumerate(pairs, start=1):
            result.state = DeliveryState.ATTEMPTING
            logger.info(
                "delivery_attempt",
                channel=self._channel.value,
                attempt=index,
                of=len(pairs),
                source=mask_address(source),
                destination=mask_address(destination),
            )

            try:
                sent = await self._client.send(message, source, destination)
            except Exception as e:
                classified = classify_delivery_error(e, source, destination)
                retryable = isinstance(classified, RetryableInvalidAddress)
                result.attempts.append(DeliveryAttempt(
                    source=source,
                    destination=destination,
                    outcome=(
                        AttemptOutcome.RETRYABLE_INVALID_ADDRESS if retryable
                        else AttemptOutcome.FATAL
                    ),
                    error_message=str(classified),
                ))
                result.error = classified

                logger.warning(
                    "delivery_attempt_failed",
                    channel=self._channel.value,
                    attempt=index,
                    retryable=retryable,
                    error=str(classified),
                )
                if retryable:
                    continue

                result.state = DeliveryState.ABORTED
                return result

            result.attempts.append(DeliveryAttempt(
                source=source,
                destination=destination,
                outcome=AttemptOutcome.SENT,
            ))
            result.state = DeliveryState.SUCCESS
            result.source = source
            result.destination = destination
            result.message_id = sent.id
            result.provider_status = sent.status
            result.error = None

            logger.info(
                "delivery_sent",
                channel=self._channel.value,
                message_id=sent.id,
                attempts=index,
            )

            if self._confirm_delivery:
                status = await self._confirm_status(sent.id)
                if status is not None:
                    result.provider_status = status.status
            return result

        # Every pair rejected the address format
        result.state = DeliveryState.ABORTED
        if result.error is None:
            result.error = FatalDeliveryError(f"No {self._channel.value} address variants to try")
        return result

    async def _confirm_status(self, message_id: str) -> Optional[MessageStatus]:
        """
        Best-effort delivery status query.

        Failure is logged and ignored; the send already succeeded.
        """
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._status_attempts),
                wait=wait_exponential(multiplier=self._status_backoff_seconds, max=30),
                retry=retry_if_exception_type(ProviderError),
                reraise=True,
            ):
                with attempt:
                    status = await self._client.fetch_status(message_id)
        except Exception as e:
            logger.warning("delivery_status_unavailable", message_id=message_id, error=str(e))
            return None

        logger.info(
            "delivery_status",
            message_id=message_id,
            status=status.status,
            error_code=status.error_code,
            error_message=status.error_message,
        )
        return status


class Notifier:
    """
    Formats reports and delivers them over the configured channels.

    Source addresses come from the provider settings, destinations from
    the notification settings.
    """

    def __init__(
        self,
        client: MessagingClient,
        provider_settings: TwilioSettings,
        settings: NotificationSettings,
    ):
        self._client = client
        self._settings = settings
        self._sources = {
            Channel.WHATSAPP: provider_settings.whatsapp_from,
            Channel.SMS: provider_settings.phone_number,
        }
        self._destinations = {
            Channel.WHATSAPP: settings.whatsapp_to,
            Channel.SMS: settings.sms_to,
        }

    @property
    def channel_order(self) -> list[Channel]:
        return self._settings.channel_order

    @staticmethod
    def format_message(report: SpendingReport) -> str:
        """Render the daily message; every amount has 2 decimal places."""
        return MESSAGE_TEMPLATE.format(
            name=report.recipient_name,
            daily_limit=report.daily_limit,
            monthly_spent=report.monthly_spent,
            last_month_spent=report.last_month_spent,
            average_daily=report.average_daily_last_month,
        )

    async def deliver(
        self,
        message: str,
        destination_raw: Optional[str],
        source_raw: Optional[str],
        channel: Channel,
        confirm_delivery: Optional[bool] = None,
    ) -> DeliveryResult:
        """
        Deliver `message` over one channel, trying every address variant pair.

        Args:
            message: Text to send
            destination_raw: Recipient address as configured
            source_raw: Sender address as configured
            channel: Channel that decides the address encoding
            confirm_delivery: Override the channel's status-query default

        Returns:
            DeliveryResult in state SUCCESS or ABORTED

        Raises:
            ConfigurationError: If either address is missing
        """
        source = build_address(source_raw, channel)
        destination = build_address(destination_raw, channel)
        pairs = candidate_pairs(source.variants, destination.variants)

        if confirm_delivery is None:
            confirm_delivery = channel in STATUS_CONFIRMED_CHANNELS

        machine = DeliveryStateMachine(
            self._client,
            channel,
            confirm_delivery=confirm_delivery,
            status_attempts=self._settings.status_check_attempts,
            status_backoff_seconds=self._settings.status_check_backoff_seconds,
        )

        logger.info(
            "delivery_started",
            channel=channel.value,
            source=mask_address(source.raw),
            destination=mask_address(destination.raw),
            pairs=len(pairs),
        )
        result = await machine.run(message, pairs)

        if result.succeeded:
            logger.info(
                "delivery_succeeded",
                channel=channel.value,
                message_id=result.message_id,
                status=result.provider_status,
                source=mask_address(result.source),
                destination=mask_address(result.destination),
            )
        else:
            logger.error(
                "delivery_aborted",
                channel=channel.value,
                attempts=result.attempt_count,
                error_type=type(result.error).__name__,
                error=str(result.error),
            )
        return result

    async def send_report(self, report: SpendingReport) -> DeliveryResult:
        """
        Format `report` and deliver it, falling back across channels.

        Raises:
            BudgetPalError: The last channel's error if no channel delivered
        """
        message = self.format_message(report)
        last_error: Optional[BudgetPalError] = None

        for channel in self.channel_order:
            try:
                result = await self.deliver(
                    message,
                    self._destinations[channel],
                    self._sources[channel],
                    channel,
                )
            except ConfigurationError as e:
                logger.warning("channel_skipped", channel=channel.value, reason=str(e))
                last_error = e
                continue

            if result.succeeded:
                return result

            last_error = result.error
            logger.warning("channel_failed", channel=channel.value, error=str(result.error))

        if last_error is None:
            last_error = ConfigurationError("No notification channel configured")
        raise last_error

    async def send_test_message(self, to: Optional[str] = None) -> DeliveryResult:
        """
        Send a short connectivity check over the first channel.

        Uses the reduced path: no delivery status query.

        Raises:
            ConfigurationError: If the channel's addresses are missing
            DeliveryError: If every variant pair failed
        """
        channel = self.channel_order[0]
        result = await self.deliver(
            TEST_MESSAGE,
            to or self._destinations[channel],
            self._sources[channel],
            channel,
            confirm_delivery=False,
        )
        if not result.succeeded:
            raise result.error
        return result
