"""
Tests for Budget Pal

Test strategy:
1. Unit tests for individual components (models, calculator, notifier)
2. Integration tests for the job and scheduler (with fake external services)
3. No real API calls in tests (use fakes and mocks)
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from budget_pal.errors import CalculationError, ProviderError
from budget_pal.models import (
    Channel,
    DeliveryAttempt,
    AttemptOutcome,
    DeliveryResult,
    DeliveryState,
    JobOutcome,
    JobRun,
    JobTrigger,
    SpendingReport,
    Transaction,
)


class TestTransaction:
    """Tests for the Transaction model."""

    def test_from_record_with_date(self):
        """Test conversion of a typed record."""
        transaction = Transaction.from_record({"date": date(2024, 3, 1), "amount": 12.34})
        assert transaction.date == date(2024, 3, 1)
        assert transaction.amount == Decimal("12.34")

    def test_from_record_with_strings(self):
        """Test that ISO dates and string amounts are parsed."""
        transaction = Transaction.from_record({"date": "2024-03-01", "amount": "-5.00"})
        assert transaction.date == date(2024, 3, 1)
        assert transaction.amount == Decimal("-5.00")
        assert not transaction.is_spend

    def test_from_record_with_datetime(self):
        """Test that a datetime is reduced to its date."""
        transaction = Transaction.from_record({"date": datetime(2024, 3, 1, 23, 59), "amount": 1})
        assert transaction.date == date(2024, 3, 1)

    @pytest.mark.parametrize("amount", ["abc", None, "NaN", "Infinity"])
    def test_from_record_rejects_bad_amount(self, amount):
        """Test that unparseable amounts raise CalculationError."""
        with pytest.raises(CalculationError):
            Transaction.from_record({"date": "2024-03-01", "amount": amount})

    @pytest.mark.parametrize("value", ["yesterday", None, "2024-02-30"])
    def test_from_record_rejects_bad_date(self, value):
        """Test that unparseable dates raise CalculationError."""
        with pytest.raises(CalculationError):
            Transaction.from_record({"date": value, "amount": "1"})

    def test_zero_is_not_spend(self):
        assert not Transaction(date=date(2024, 3, 1), amount=Decimal("0")).is_spend

    def test_transaction_is_frozen(self):
        transaction = Transaction(date=date(2024, 3, 1), amount=Decimal("1"))
        with pytest.raises(ValidationError):
            transaction.amount = Decimal("2")


class TestSpendingReport:
    """Tests for the SpendingReport model."""

    def test_rejects_negative_limit(self):
        """Test that a negative daily limit is rejected."""
        with pytest.raises(ValidationError):
            SpendingReport(
                recipient_name="Sam",
                daily_limit=Decimal("-1"),
                monthly_spent=Decimal("0"),
                last_month_spent=Decimal("0"),
                average_daily_last_month=Decimal("0"),
            )

    def test_rejects_empty_name(self):
        with pytest.raises(ValidationError):
            SpendingReport(
                recipient_name="",
                daily_limit=Decimal("1"),
                monthly_spent=Decimal("0"),
                last_month_spent=Decimal("0"),
                average_daily_last_month=Decimal("0"),
            )


class TestDeliveryModels:
    """Tests for delivery result models."""

    def test_result_defaults_to_idle(self):
        result = DeliveryResult(channel=Channel.SMS)
        assert result.state == DeliveryState.IDLE
        assert not result.succeeded
        assert result.attempt_count == 0

    def test_error_excluded_from_dump(self):
        """Test that the raw exception does not leak into serialized output."""
        result = DeliveryResult(
            channel=Channel.WHATSAPP,
            state=DeliveryState.ABORTED,
            attempts=[DeliveryAttempt(source="a", destination="b", outcome=AttemptOutcome.FATAL)],
            error=ProviderError("Authenticate", code=20003),
        )
        dumped = result.model_dump()
        assert "error" not in dumped
        assert dumped["attempts"][0]["outcome"] == AttemptOutcome.FATAL


class TestProviderError:
    """Tests for ProviderError formatting."""

    def test_code_in_message(self):
        error = ProviderError("Invalid 'To' Phone Number", code=21211, status=400)
        assert str(error) == "[21211] Invalid 'To' Phone Number"
        assert error.provider_message == "Invalid 'To' Phone Number"

    def test_without_code(self):
        assert str(ProviderError("timeout")) == "timeout"


class TestJobRun:
    """Tests for the JobRun model."""

    def test_duration_after_completion(self):
        started = datetime(2024, 4, 10, 8, 0, tzinfo=timezone.utc)
        run = JobRun(trigger=JobTrigger.MANUAL, started_at=started)

        assert run.duration_seconds is None

        run.completed_at = started + timedelta(seconds=3)
        run.outcome = JobOutcome.SUCCESS

        assert run.duration_seconds == 3.0

    def test_unique_run_ids(self):
        started = datetime(2024, 4, 10, 8, 0, tzinfo=timezone.utc)
        assert JobRun(started_at=started).run_id != JobRun(started_at=started).run_id

    def test_to_log_dict(self):
        started = datetime(2024, 4, 10, 8, 0, tzinfo=timezone.utc)
        run = JobRun(started_at=started, outcome=JobOutcome.FAILED, error_type="UpstreamFetchError")

        data = run.to_log_dict()

        assert data["trigger"] == "schedule"
        assert data["outcome"] == "failed"
        assert data["completed_at"] is None
        assert data["started_at"] == "2024-04-10T08:00:00+00:00"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
