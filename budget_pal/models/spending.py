"""
Spending Data Models

Transactions come from the bank aggregator and are never modified here.
The SpendingReport is derived on every run and never persisted.

SIGN CONVENTION: `amount > 0` is money leaving the account (spending).
Refunds, deposits and zero amounts are carried but not counted as spend.
"""

import datetime as dt
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from budget_pal.errors import CalculationError


class Transaction(BaseModel):
    """A single posted or pending bank transaction."""

    model_config = ConfigDict(frozen=True)

    date: dt.date = Field(
        ...,
        description="Calendar date of the transaction"
    )
    amount: Decimal = Field(
        ...,
        description="Signed amount; positive means spending"
    )

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Transaction":
        """
        Build a Transaction from a loosely typed aggregator record.

        Accepts `date` as a date, datetime or ISO string and `amount`
        as anything Decimal can parse.

        Raises:
            CalculationError: If the date or amount cannot be parsed
        """
        raw_date = record.get("date")
        raw_amount = record.get("amount")

        if isinstance(raw_date, dt.datetime):
            raw_date = raw_date.date()

        try:
            amount = raw_amount if isinstance(raw_amount, Decimal) else Decimal(str(raw_amount))
        except (InvalidOperation, TypeError, ValueError):
            raise CalculationError(f"Unparseable transaction amount: {raw_amount!r}")
        if not amount.is_finite():
            raise CalculationError(f"Unparseable transaction amount: {raw_amount!r}")

        try:
            return cls(date=raw_date, amount=amount)
        except ValidationError as e:
            raise CalculationError(f"Unparseable transaction date: {raw_date!r} ({e.error_count()} error(s))")

    @property
    def is_spend(self) -> bool:
        return self.amount > 0


class Account(BaseModel):
    """A bank account linked through the aggregator."""

    model_config = ConfigDict(frozen=True)

    account_id: str
    name: str
    mask: Optional[str] = None
    type: Optional[str] = None
    subtype: Optional[str] = None
    current_balance: Optional[Decimal] = None
    iso_currency_code: Optional[str] = None


class SpendingReport(BaseModel):
    """
    Figures sent in the daily message.

    All amounts are rounded to 2 decimal places by the calculator.
    """

    model_config = ConfigDict(frozen=True)

    recipient_name: str = Field(
        ...,
        min_length=1,
        description="Name used in the greeting"
    )
    daily_limit: Decimal = Field(
        ...,
        ge=0,
        description="Configured daily spending limit"
    )
    monthly_spent: Decimal = Field(
        ...,
        description="Spend in the calendar month containing the reference date"
    )
    last_month_spent: Decimal = Field(
        ...,
        description="Spend in the previous calendar month"
    )
    average_daily_last_month: Decimal = Field(
        ...,
        description="last_month_spent divided by that month's day count"
    )
