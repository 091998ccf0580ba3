"""Configuration package."""

from budget_pal.config.settings import (
    AppSettings,
    NotificationSettings,
    PlaidSettings,
    ReportSettings,
    ScheduleSettings,
    Settings,
    TwilioSettings,
    load_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "NotificationSettings",
    "PlaidSettings",
    "ReportSettings",
    "ScheduleSettings",
    "Settings",
    "TwilioSettings",
    "load_settings",
    "validate_all_settings",
]
