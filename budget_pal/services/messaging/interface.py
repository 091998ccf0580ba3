"""
Abstract Messaging Client Interface

The notifier depends on this capability, not on a provider's payload
shape. Implementations report failures as ProviderError so the
notifier can classify them.
"""

from abc import ABC, abstractmethod

from budget_pal.models.delivery import MessageStatus, SentMessage


class MessagingClient(ABC):
    """Sends text messages and reports their delivery status."""

    @abstractmethod
    async def send(self, body: str, from_: str, to: str) -> SentMessage:
        """
        Submit one message.

        Raises:
            ProviderError: If the provider rejects the request
            ConfigurationError: If provider credentials are missing
        """
        pass

    @abstractmethod
    async def fetch_status(self, message_id: str) -> MessageStatus:
        """
        Look up the delivery status of a previously sent message.

        Raises:
            ProviderError: If the lookup fails
        """
        pass
