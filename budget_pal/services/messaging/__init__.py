"""Messaging services package."""

from budget_pal.services.messaging.interface import MessagingClient
from budget_pal.services.messaging.twilio_service import TwilioMessagingClient

__all__ = ["MessagingClient", "TwilioMessagingClient"]
