"""Tests for the Twilio messaging client."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from twilio.base.exceptions import TwilioException, TwilioRestException

from budget_pal.config import TwilioSettings
from budget_pal.errors import ConfigurationError, ProviderError
from budget_pal.services import TwilioMessagingClient


def make_client(rest=None, **overrides) -> TwilioMessagingClient:
    values = {"account_sid": "AC123", "auth_token": "token"}
    values.update(overrides)
    return TwilioMessagingClient(TwilioSettings(_env_file=None, **values), client=rest)


class TestSend:

    async def test_send_returns_sid_and_status(self):
        rest = MagicMock()
        rest.messages.create.return_value = SimpleNamespace(sid="SM123", status="queued")

        sent = await make_client(rest).send("hi", "whatsapp:+14155238886", "whatsapp:+15551234567")

        assert sent.id == "SM123"
        assert sent.status == "queued"
        rest.messages.create.assert_called_once_with(
            body="hi",
            from_="whatsapp:+14155238886",
            to="whatsapp:+15551234567",
        )

    async def test_rest_error_keeps_code(self):
        rest = MagicMock()
        rest.messages.create.side_effect = TwilioRestException(
            400, "/Messages.json", msg="The 'To' number 15551234567 is not a valid phone number.", code=21211,
        )

        with pytest.raises(ProviderError) as exc_info:
            await make_client(rest).send("hi", "+15550001111", "15551234567")

        assert exc_info.value.code == 21211
        assert exc_info.value.status == 400
        assert "not a valid phone number" in exc_info.value.provider_message

    async def test_other_twilio_error(self):
        rest = MagicMock()
        rest.messages.create.side_effect = TwilioException("Credentials are required")

        with pytest.raises(ProviderError) as exc_info:
            await make_client(rest).send("hi", "+15550001111", "+15551234567")
        assert exc_info.value.code is None

    async def test_missing_credentials(self):
        with pytest.raises(ConfigurationError, match="TWILIO_ACCOUNT_SID"):
            await make_client(auth_token=None).send("hi", "+15550001111", "+15551234567")


class TestFetchStatus:

    async def test_fetch_status(self):
        rest = MagicMock()
        rest.messages.return_value.fetch.return_value = SimpleNamespace(
            sid="SM123", status="undelivered", error_code=63016, error_message="Outside the allowed window",
        )

        status = await make_client(rest).fetch_status("SM123")

        rest.messages.assert_called_once_with("SM123")
        assert status.status == "undelivered"
        assert status.error_code == 63016

    async def test_fetch_status_error(self):
        rest = MagicMock()
        rest.messages.return_value.fetch.side_effect = TwilioRestException(404, "/Messages/SM123.json", msg="Not found", code=20404)

        with pytest.raises(ProviderError, match=r"\[20404\]"):
            await make_client(rest).fetch_status("SM123")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
