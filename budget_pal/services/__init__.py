"""Services package: external collaborators behind small interfaces."""

from budget_pal.services.aggregator import PlaidTransactionService, TransactionSource
from budget_pal.services.messaging import MessagingClient, TwilioMessagingClient

__all__ = [
    # Aggregator
    "PlaidTransactionService",
    "TransactionSource",
    # Messaging
    "MessagingClient",
    "TwilioMessagingClient",
]
