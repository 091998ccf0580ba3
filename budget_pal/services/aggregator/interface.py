"""
Abstract Transaction Source Interface

The job depends only on this interface, not on how the access
credential was obtained or which aggregator serves the data.
Tests use an in-memory implementation.
"""

from abc import ABC, abstractmethod
from datetime import date

from budget_pal.models.spending import Account, Transaction


class TransactionSource(ABC):
    """Read-only access to a linked bank item."""

    @abstractmethod
    def resolve_access_token(self) -> str:
        """
        Return the stored access credential of the linked item.

        Raises:
            ConfigurationError: If no credential is configured
        """
        pass

    @abstractmethod
    async def get_transactions(
        self,
        access_token: str,
        start_date: date,
        end_date: date,
    ) -> list[Transaction]:
        """
        Fetch every transaction dated within [start_date, end_date].

        Raises:
            UpstreamFetchError: If the aggregator call fails
            CalculationError: If a returned record is malformed
        """
        pass

    @abstractmethod
    async def get_accounts(self, access_token: str) -> list[Account]:
        """
        List the accounts behind the credential.

        Raises:
            UpstreamFetchError: If the aggregator call fails
        """
        pass
