"""
Messaging Client using Twilio

Covers both SMS and WhatsApp: Twilio selects the channel from the
address format (`whatsapp:+1555...` vs `+1555...`), so the notifier
decides the encoding and this client only transports it.

TwilioRestException is translated into ProviderError carrying Twilio's
numeric error code (e.g. 21211 "Invalid 'To' Phone Number").
"""

import asyncio
from typing import Optional

from twilio.base.exceptions import TwilioException, TwilioRestException
from twilio.rest import Client

from budget_pal.config.settings import TwilioSettings
from budget_pal.errors import ConfigurationError, ProviderError
from budget_pal.models.delivery import MessageStatus, SentMessage
from budget_pal.services.messaging.interface import MessagingClient


class TwilioMessagingClient(MessagingClient):
    """
    Twilio implementation of MessagingClient.

    Args:
        settings: Twilio credentials
        client: Pre-built twilio Client (tests); created lazily otherwise
    """

    def __init__(
        self,
        settings: TwilioSettings,
        client: Optional[Client] = None,
    ):
        self._settings = settings
        self._client = client

    def _get_client(self) -> Client:
        """Get or create the Twilio REST client."""
        if self._client is None:
            if not self._settings.account_sid or not self._settings.auth_token:
                raise ConfigurationError(
                    "Missing Twilio configuration. Ensure TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN are set."
                )
            self._client = Client(self._settings.account_sid, self._settings.auth_token)
        return self._client

    async def send(self, body: str, from_: str, to: str) -> SentMessage:
        client = self._get_client()
        try:
            message = await asyncio.to_thread(
                client.messages.create,
                body=body,
                from_=from_,
                to=to,
            )
        except TwilioRestException as e:
            raise ProviderError(e.msg, code=e.code, status=e.status) from e
        except TwilioException as e:
            raise ProviderError(str(e)) from e

        return SentMessage(id=message.sid, status=message.status)

    async def fetch_status(self, message_id: str) -> MessageStatus:
        client = self._get_client()
        try:
            message = await asyncio.to_thread(client.messages(message_id).fetch)
        except TwilioRestException as e:
            raise ProviderError(e.msg, code=e.code, status=e.status) from e
        except TwilioException as e:
            raise ProviderError(str(e)) from e

        return MessageStatus(
            id=message.sid,
            status=message.status,
            error_code=message.error_code,
            error_message=message.error_message,
        )
