"""Spending calculations package."""

from budget_pal.calculations.spending import (
    SpendingCalculator,
    days_in_month,
    month_bounds,
    previous_month,
    round_money,
)

__all__ = [
    "SpendingCalculator",
    "days_in_month",
    "month_bounds",
    "previous_month",
    "round_money",
]
