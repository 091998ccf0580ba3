"""
Delivery Models

Types shared by the messaging client and the notifier's delivery
state machine:

    IDLE -> ATTEMPTING(pair_i) -> SUCCESS
                               -> next pair (retryable invalid address)
                               -> ABORTED  (fatal error, or pairs exhausted)
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Channel(str, Enum):
    """Messaging channels, in no particular order."""
    WHATSAPP = "whatsapp"
    SMS = "sms"


class DeliveryState(str, Enum):
    """States of one delivery attempt sequence."""
    IDLE = "idle"
    ATTEMPTING = "attempting"
    SUCCESS = "success"      # terminal
    ABORTED = "aborted"      # terminal: fatal error or all pairs exhausted


class AttemptOutcome(str, Enum):
    """Result of a single (source, destination) attempt."""
    SENT = "sent"
    RETRYABLE_INVALID_ADDRESS = "retryable_invalid_address"
    FATAL = "fatal"


class DeliveryAddress(BaseModel):
    """
    A logical messaging endpoint.

    `raw` is the address as configured; `variants` are candidate
    encodings of the same endpoint, canonical form first.
    """

    model_config = ConfigDict(frozen=True)

    raw: str
    channel: Channel
    variants: tuple[str, ...] = Field(default_factory=tuple)


class DeliveryAttempt(BaseModel):
    """One provider call within a delivery sequence."""

    model_config = ConfigDict(frozen=True)

    source: str
    destination: str
    outcome: AttemptOutcome
    error_message: Optional[str] = None


class DeliveryResult(BaseModel):
    """
    Final state of a delivery sequence.

    On SUCCESS, `source`/`destination` hold the variant pair that worked.
    On ABORTED, `error` holds the classified error that ended the sequence.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    channel: Channel
    state: DeliveryState = DeliveryState.IDLE
    source: Optional[str] = None
    destination: Optional[str] = None
    message_id: Optional[str] = None
    provider_status: Optional[str] = None
    attempts: list[DeliveryAttempt] = Field(default_factory=list)
    error: Optional[Exception] = Field(default=None, exclude=True)

    @property
    def succeeded(self) -> bool:
        return self.state == DeliveryState.SUCCESS

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)


class SentMessage(BaseModel):
    """Provider acknowledgement of an accepted message."""

    model_config = ConfigDict(frozen=True)

    id: str
    status: Optional[str] = None


class MessageStatus(BaseModel):
    """Provider-side delivery status of a message."""

    model_config = ConfigDict(frozen=True)

    id: str
    status: Optional[str] = None
    error_code: Optional[int] = None
    error_message: Optional[str] = None
