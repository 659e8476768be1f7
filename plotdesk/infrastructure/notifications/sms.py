"""SMS gateway channel."""

from typing import Any

import httpx

from plotdesk.config import get_settings
from plotdesk.core.entities.notification import NotificationChannelName
from plotdesk.infrastructure.notifications.base import BaseNotificationChannel


class SMSChannel(BaseNotificationChannel):
    """Sends text messages through an HTTP SMS gateway with a sender id."""

    name = NotificationChannelName.SMS
    endpoint = "send"

    def __init__(self, *args: Any, sender_id: str = "SOMANING", **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.sender_id = sender_id

    def build_payload(self, destination: str, message: str) -> dict[str, Any]:
        return {
            "to": destination,
            "message": message,
            "sender": self.sender_id,
        }

    def config_summary(self) -> dict[str, Any]:
        summary = super().config_summary()
        summary["sender_id"] = self.sender_id
        return summary

    @classmethod
    def from_settings(cls, transport: httpx.AsyncBaseTransport | None = None) -> "SMSChannel":
        config = get_settings().sms
        return cls(
            enabled=config.enabled,
            api_url=config.api_url,
            api_key=config.api_key,
            sender_id=config.sender_id,
            transport=transport,
        )
