"""Transactional email API channel."""

from typing import Any

import httpx

from plotdesk.config import get_settings
from plotdesk.core.entities.notification import NotificationChannelName
from plotdesk.infrastructure.notifications.base import (
    BaseNotificationChannel,
    InvalidDestinationError,
)

DEFAULT_SUBJECT = "Payment Reminder"


class EmailChannel(BaseNotificationChannel):
    """Sends plain-text email through an HTTP mail API."""

    name = NotificationChannelName.EMAIL
    endpoint = "send"

    def __init__(
        self,
        *args: Any,
        from_address: str = "reminders@plotdesk.local",
        subject: str = DEFAULT_SUBJECT,
        **kwargs: Any,
    ):
        super().__init__(*args, **kwargs)
        self.from_address = from_address
        self.subject = subject

    def normalize_destination(self, destination: str) -> str:
        address = (destination or "").strip().lower()
        if not address:
            raise InvalidDestinationError("email address is empty")
        local, _, domain = address.partition("@")
        if not local or not domain:
            raise InvalidDestinationError(f"invalid email address: {address}")
        return address

    def build_payload(self, destination: str, message: str) -> dict[str, Any]:
        return {
            "to": destination,
            "from": self.from_address,
            "subject": self.subject,
            "text": message,
        }

    def config_summary(self) -> dict[str, Any]:
        summary = super().config_summary()
        summary["from_address"] = self.from_address
        return summary

    @classmethod
    def from_settings(cls, transport: httpx.AsyncBaseTransport | None = None) -> "EmailChannel":
        config = get_settings().email
        return cls(
            enabled=config.enabled,
            api_url=config.api_url,
            api_key=config.api_key,
            from_address=config.from_address,
            transport=transport,
        )
