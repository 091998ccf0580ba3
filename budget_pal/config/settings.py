"""
Configuration Management for Budget Pal

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: Configuration is read once at startup into one frozen
`Settings` value. Components receive the part they need through their
constructor; nothing below this module reads the environment.

Missing credentials and addresses are allowed at load time. The operation
that needs them raises ConfigurationError when it runs, so a missing
Twilio token fails a delivery, not the whole daemon.
"""

from datetime import time
from decimal import Decimal
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from budget_pal.models.delivery import Channel


class PlaidSettings(BaseSettings):
    """Bank aggregator (Plaid) configuration."""

    model_config = SettingsConfigDict(
        env_prefix="PLAID_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    client_id: Optional[str] = Field(
        default=None,
        description="Plaid client ID"
    )
    secret: Optional[str] = Field(
        default=None,
        description="Plaid secret for the selected environment"
    )
    environment: str = Field(
        default="sandbox",
        description="Plaid environment: sandbox or production"
    )
    access_token: Optional[str] = Field(
        default=None,
        description="Access token of the linked item"
    )
    access_token_file: Path = Field(
        default=Path("temp_access_token.json"),
        description="JSON file holding {\"access_token\": ...}, used when access_token is unset"
    )
    page_size: int = Field(
        default=500,
        ge=1,
        le=500,
        description="Transactions requested per page"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        value = v.strip().lower()
        if value not in {"sandbox", "production"}:
            raise ValueError(f"Unknown Plaid environment: {v}")
        return value


class TwilioSettings(BaseSettings):
    """Messaging provider (Twilio) configuration."""

    model_config = SettingsConfigDict(
        env_prefix="TWILIO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    account_sid: Optional[str] = None
    auth_token: Optional[str] = None
    phone_number: Optional[str] = Field(
        default=None,
        description="Sender number for the SMS channel"
    )
    whatsapp_from: Optional[str] = Field(
        default=None,
        description="Sender number for the WhatsApp channel"
    )


class ReportSettings(BaseSettings):
    """Static values interpolated into the report."""

    model_config = SettingsConfigDict(
        env_prefix="REPORT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    recipient_name: str = Field(
        default="there",
        min_length=1,
        description="Name used in the greeting"
    )
    daily_limit: Decimal = Field(
        default=Decimal("100"),
        ge=0,
        description="Daily spending limit shown in the message"
    )


class NotificationSettings(BaseSettings):
    """Delivery addresses and channel fallback order."""

    model_config = SettingsConfigDict(
        env_prefix="NOTIFY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    channels: str = Field(
        default="whatsapp,sms",
        description="Comma-separated channel fallback order"
    )
    sms_to: Optional[str] = Field(
        default=None,
        description="Recipient number for the SMS channel"
    )
    whatsapp_to: Optional[str] = Field(
        default=None,
        description="Recipient number for the WhatsApp channel"
    )
    status_check_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for the post-send delivery status query"
    )
    status_check_backoff_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Base wait between status query attempts"
    )

    @field_validator("channels")
    @classmethod
    def validate_channels(cls, v: str) -> str:
        names = [name.strip().lower() for name in v.split(",") if name.strip()]
        if not names:
            raise ValueError("At least one notification channel is required")
        known = {channel.value for channel in Channel}
        unknown = [name for name in names if name not in known]
        if unknown:
            raise ValueError(f"Unknown notification channel(s): {', '.join(unknown)}")
        return ",".join(names)

    @property
    def channel_order(self) -> list[Channel]:
        """Channels in fallback order, without duplicates."""
        order: list[Channel] = []
        for name in self.channels.split(","):
            channel = Channel(name)
            if channel not in order:
                order.append(channel)
        return order


class ScheduleSettings(BaseSettings):
    """When the daily job fires."""

    model_config = SettingsConfigDict(
        env_prefix="SCHEDULE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    run_at: str = Field(
        default="08:00",
        description="Local time of day (HH:MM) for the daily run"
    )
    timezone: Optional[str] = Field(
        default=None,
        description="IANA timezone name; system local time when unset"
    )
    job_timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        description="Deadline for a single run; unbounded when unset"
    )
    health_log_interval_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Interval of the periodic health log line"
    )

    @field_validator("run_at")
    @classmethod
    def validate_run_at(cls, v: str) -> str:
        try:
            parsed = time.fromisoformat(v.strip())
        except ValueError:
            raise ValueError(f"run_at must be HH:MM, got {v!r}")
        return parsed.strftime("%H:%M")

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        try:
            ZoneInfo(v.strip())
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {v}")
        return v.strip()

    @property
    def run_at_time(self) -> time:
        return time.fromisoformat(self.run_at)

    @property
    def tzinfo(self) -> Optional[ZoneInfo]:
        return ZoneInfo(self.timezone) if self.timezone else None


class AppSettings(BaseSettings):
    """
    Process-level settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum log level"
    )
    log_json: bool = Field(
        default=True,
        description="Render logs as JSON lines (console renderer otherwise)"
    )

    # Control surface
    control_enabled: bool = Field(
        default=True,
        description="Serve the /health and /api/run-now endpoints"
    )
    control_host: str = Field(
        default="0.0.0.0",
        description="Bind address of the control server"
    )
    control_port: int = Field(
        default=3000,
        ge=1,
        le=65535,
        description="Port of the control server"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


class Settings(BaseModel):
    """
    Root settings container.

    Built once by `load_settings()` and handed to component constructors.
    """

    model_config = ConfigDict(frozen=True)

    plaid: PlaidSettings
    twilio: TwilioSettings
    report: ReportSettings
    notifications: NotificationSettings
    schedule: ScheduleSettings
    app: AppSettings


def load_settings(env_file: Optional[str] = ".env") -> Settings:
    """Read every settings group from the environment (and `env_file`)."""
    return Settings(
        plaid=PlaidSettings(_env_file=env_file),
        twilio=TwilioSettings(_env_file=env_file),
        report=ReportSettings(_env_file=env_file),
        notifications=NotificationSettings(_env_file=env_file),
        schedule=ScheduleSettings(_env_file=env_file),
        app=AppSettings(_env_file=env_file),
    )


def validate_all_settings(settings: Settings) -> dict[str, bool]:
    """
    Report which external concerns are configured.

    Returns a dict of {concern: is_configured}. Useful for startup logs.
    """
    plaid = settings.plaid
    twilio = settings.twilio
    notify = settings.notifications

    twilio_auth = bool(twilio.account_sid and twilio.auth_token)

    return {
        "plaid_credentials": bool(plaid.client_id and plaid.secret),
        "plaid_access_token": bool(plaid.access_token) or plaid.access_token_file.exists(),
        "twilio_credentials": twilio_auth,
        "whatsapp_channel": twilio_auth and bool(twilio.whatsapp_from and notify.whatsapp_to),
        "sms_channel": twilio_auth and bool(twilio.phone_number and notify.sms_to),
    }
