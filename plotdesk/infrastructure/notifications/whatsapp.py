"""WhatsApp Business API channel."""

from typing import Any

import httpx

from plotdesk.config import get_settings
from plotdesk.core.entities.notification import NotificationChannelName
from plotdesk.infrastructure.notifications.base import BaseNotificationChannel


class WhatsAppChannel(BaseNotificationChannel):
    """Sends text messages through a WhatsApp Business API gateway."""

    name = NotificationChannelName.WHATSAPP
    endpoint = "messages"

    def build_payload(self, destination: str, message: str) -> dict[str, Any]:
        return {
            "to": destination,
            "type": "text",
            "text": {"body": message},
        }

    @classmethod
    def from_settings(cls, transport: httpx.AsyncBaseTransport | None = None) -> "WhatsAppChannel":
        config = get_settings().whatsapp
        return cls(
            enabled=config.enabled,
            api_url=config.api_url,
            api_key=config.api_key,
            transport=transport,
        )
