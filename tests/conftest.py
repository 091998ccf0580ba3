"""
Shared fixtures and in-memory collaborators.

No test talks to Plaid or Twilio: the fakes below implement the same
interfaces the job depends on.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

import pytest

from budget_pal.config import (
    AppSettings,
    NotificationSettings,
    PlaidSettings,
    ReportSettings,
    ScheduleSettings,
    Settings,
    TwilioSettings,
)
from budget_pal.errors import ProviderError
from budget_pal.models import Account, MessageStatus, SentMessage, Transaction
from budget_pal.services import MessagingClient, TransactionSource


def invalid_to_number() -> ProviderError:
    return ProviderError("The 'To' number is not a valid phone number.", code=21211, status=400)


class FakeMessagingClient(MessagingClient):
    """
    Scripted messaging client.

    `send_errors` is consumed one entry per send() call: an exception is
    raised, None means the send succeeds. Once exhausted, sends succeed.
    """

    def __init__(
        self,
        send_errors: Optional[Sequence[Optional[Exception]]] = None,
        status_errors: Optional[Sequence[Optional[Exception]]] = None,
        status: str = "delivered",
    ):
        self.send_errors = list(send_errors or [])
        self.status_errors = list(status_errors or [])
        self.status = status
        self.sent: list[tuple[str, str, str]] = []
        self.status_calls: list[str] = []

    async def send(self, body: str, from_: str, to: str) -> SentMessage:
        self.sent.append((body, from_, to))
        if self.send_errors:
            error = self.send_errors.pop(0)
            if error is not None:
                raise error
        return SentMessage(id=f"SM{len(self.sent):04d}", status="queued")

    async def fetch_status(self, message_id: str) -> MessageStatus:
        self.status_calls.append(message_id)
        if self.status_errors:
            error = self.status_errors.pop(0)
            if error is not None:
                raise error
        return MessageStatus(id=message_id, status=self.status)


class FakeTransactionSource(TransactionSource):
    """In-memory transaction source."""

    def __init__(
        self,
        transactions: Optional[list[Transaction]] = None,
        accounts: Optional[list[Account]] = None,
        token: str = "access-sandbox-test",
        error: Optional[Exception] = None,
    ):
        self.transactions = transactions or []
        self.accounts = accounts or []
        self.token = token
        self.error = error
        self.requests: list[tuple[str, date, date]] = []

    def resolve_access_token(self) -> str:
        return self.token

    async def get_transactions(self, access_token: str, start_date: date, end_date: date) -> list[Transaction]:
        self.requests.append((access_token, start_date, end_date))
        if self.error is not None:
            raise self.error
        return [tx for tx in self.transactions if start_date <= tx.date <= end_date]

    async def get_accounts(self, access_token: str) -> list[Account]:
        if self.error is not None:
            raise self.error
        return self.accounts


def tx(day: str, amount: str) -> Transaction:
    return Transaction(date=date.fromisoformat(day), amount=Decimal(amount))


@pytest.fixture(autouse=True)
def reset_log_handlers():
    """Drop stream handlers added by configure_logging() during a test."""
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if type(handler) is logging.StreamHandler:
            root.removeHandler(handler)


@pytest.fixture
def twilio_settings() -> TwilioSettings:
    return TwilioSettings(
        _env_file=None,
        account_sid="AC00000000000000000000000000000000",
        auth_token="test-token",
        phone_number="+15550001111",
        whatsapp_from="whatsapp:+14155238886",
    )


@pytest.fixture
def notification_settings() -> NotificationSettings:
    return NotificationSettings(
        _env_file=None,
        channels="whatsapp,sms",
        sms_to="+15551234567",
        whatsapp_to="+15551234567",
        status_check_attempts=2,
        status_check_backoff_seconds=0,
    )


@pytest.fixture
def settings(twilio_settings, notification_settings) -> Settings:
    return Settings(
        plaid=PlaidSettings(_env_file=None, client_id="client", secret="secret", access_token="access-sandbox-test"),
        twilio=twilio_settings,
        report=ReportSettings(_env_file=None, recipient_name="Sam", daily_limit=Decimal("100")),
        notifications=notification_settings,
        schedule=ScheduleSettings(_env_file=None, run_at="08:00", timezone="America/New_York"),
        app=AppSettings(_env_file=None, control_enabled=False),
    )


@pytest.fixture
def messaging() -> FakeMessagingClient:
    return FakeMessagingClient()
