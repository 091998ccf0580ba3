"""
Spending Calculator

DESIGN DECISION: Calculation is PURE and DETERMINISTIC.
No I/O, no clock reads, no configuration lookups: the reference date is
passed in and the two static report values are fixed at construction.
Calling `generate_report` twice with the same inputs gives equal reports.

Rules:
- Only `amount > 0` counts as spending
- A calendar month is inclusive on both ends
- Results are rounded to 2 decimal places, half up
"""

import calendar
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Union

from budget_pal.models.spending import SpendingReport, Transaction

CENTS = Decimal("0.01")

DateLike = Union[date, datetime]


def _as_date(value: DateLike) -> date:
    return value.date() if isinstance(value, datetime) else value


def round_money(value: Decimal) -> Decimal:
    """Round to cents using standard (half up) rounding."""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def month_bounds(reference: DateLike) -> tuple[date, date]:
    """First and last calendar day of the month containing `reference`."""
    day = _as_date(reference)
    last_day = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last_day)


def days_in_month(reference: DateLike) -> int:
    """Inclusive day count of the month containing `reference` (28-31)."""
    start, end = month_bounds(reference)
    return (end - start).days + 1


def previous_month(reference: DateLike) -> date:
    """
    Same day one calendar month earlier, clamped to the month's length.

    March 31 -> February 28/29, January 15 -> December 15 of the prior year.
    """
    day = _as_date(reference)
    year, month = (day.year - 1, 12) if day.month == 1 else (day.year, day.month - 1)
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


class SpendingCalculator:
    """
    Turns a transaction list into a SpendingReport.

    `recipient_name` and `daily_limit` come from configuration,
    never from transaction data.
    """

    def __init__(self, recipient_name: str, daily_limit: Decimal):
        self._recipient_name = recipient_name
        self._daily_limit = Decimal(daily_limit)

    def monthly_spending(
        self,
        transactions: Iterable[Transaction],
        reference_date: DateLike,
    ) -> Decimal:
        """
        Total spend in the calendar month containing `reference_date`.

        Transactions dated exactly on the first or last day are included.
        """
        start, end = month_bounds(reference_date)
        total = sum(
            (tx.amount for tx in transactions if start <= tx.date <= end and tx.is_spend),
            Decimal("0"),
        )
        return round_money(total)

    def daily_average(
        self,
        transactions: Iterable[Transaction],
        reference_date: DateLike,
    ) -> Decimal:
        """Monthly spend divided by the number of days in that month."""
        monthly = self.monthly_spending(transactions, reference_date)
        return round_money(monthly / days_in_month(reference_date))

    def generate_report(
        self,
        transactions: Iterable[Transaction],
        now: DateLike,
    ) -> SpendingReport:
        """
        Build the report for the month containing `now` and the month before.

        Args:
            transactions: Transactions covering at least both months
            now: Reference date (normally today in the configured timezone)

        Returns:
            SpendingReport with zero totals for an empty list
        """
        items = list(transactions)
        last_month = previous_month(now)

        return SpendingReport(
            recipient_name=self._recipient_name,
            daily_limit=round_money(self._daily_limit),
            monthly_spent=self.monthly_spending(items, now),
            last_month_spent=self.monthly_spending(items, last_month),
            average_daily_last_month=self.daily_average(items, last_month),
        )
