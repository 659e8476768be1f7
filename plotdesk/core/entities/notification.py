"""Notification channel names and per-attempt delivery results."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class NotificationChannelName(str, Enum):
    """Delivery transport for a reminder message."""

    WHATSAPP = "whatsapp"
    SMS = "sms"
    EMAIL = "email"

    @classmethod
    def parse(cls, value: Any) -> "NotificationChannelName":
        """Parse a channel from its tag or legacy display name ("WhatsApp")."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown notification channel: {value!r}") from None


# Dispatch order when several channels are configured
CHANNEL_ORDER: tuple[NotificationChannelName, ...] = (
    NotificationChannelName.WHATSAPP,
    NotificationChannelName.SMS,
    NotificationChannelName.EMAIL,
)


def parse_reminder_method(value: Any) -> list[NotificationChannelName]:
    """
    Normalize a reminder method into an ordered, de-duplicated channel list.

    Accepts lists of names or the legacy comma strings ("WhatsApp,SMS",
    "All"). The result always follows CHANNEL_ORDER.
    """
    if value is None:
        raise ValueError("reminder_method is required")

    if isinstance(value, str):
        if value.strip().lower() == "all":
            return list(CHANNEL_ORDER)
        items: list[Any] = [part for part in value.split(",") if part.strip()]
    elif isinstance(value, NotificationChannelName):
        items = [value]
    else:
        items = list(value)

    channels = {NotificationChannelName.parse(item) for item in items}
    if not channels:
        raise ValueError("reminder_method must name at least one channel")
    return [channel for channel in CHANNEL_ORDER if channel in channels]


class NotificationResult(BaseModel):
    """
    Outcome of one delivery attempt over one channel.

    Failures are data: a channel never raises, it returns success=False with
    the error captured as text. Simulated results come from channels that
    are disabled or have no credentials.
    """

    channel: NotificationChannelName
    success: bool
    message_id: str | None = None
    error: str | None = None
    sent_at: datetime = Field(default_factory=utc_now)
    simulated: bool = False

    @field_validator("sent_at")
    @classmethod
    def _sent_at_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)
