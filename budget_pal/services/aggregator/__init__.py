"""Bank aggregator services package."""

from budget_pal.services.aggregator.interface import TransactionSource
from budget_pal.services.aggregator.plaid_service import PlaidTransactionService

__all__ = ["PlaidTransactionService", "TransactionSource"]
