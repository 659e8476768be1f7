"""
Notification channel implementations.

Creates the channel set from configuration.
"""

import httpx

from plotdesk.config import get_logger
from plotdesk.core.entities.notification import NotificationChannelName
from plotdesk.core.interfaces import INotificationChannel
from plotdesk.infrastructure.notifications.base import (
    BaseNotificationChannel,
    InvalidDestinationError,
    extract_message_id,
    normalize_phone,
)
from plotdesk.infrastructure.notifications.email import EmailChannel
from plotdesk.infrastructure.notifications.sms import SMSChannel
from plotdesk.infrastructure.notifications.whatsapp import WhatsAppChannel

logger = get_logger(__name__)


def build_channels(
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict[NotificationChannelName, INotificationChannel]:
    """
    Build every notification channel from settings.

    Args:
        transport: Optional httpx transport shared by all channels

    Returns:
        Mapping of channel name to channel
    """
    channels: dict[NotificationChannelName, INotificationChannel] = {
        NotificationChannelName.WHATSAPP: WhatsAppChannel.from_settings(transport),
        NotificationChannelName.SMS: SMSChannel.from_settings(transport),
        NotificationChannelName.EMAIL: EmailChannel.from_settings(transport),
    }
    logger.info(
        "notification_channels_built",
        live=[name.value for name, ch in channels.items() if ch.enabled and ch.configured],
    )
    return channels


__all__ = [
    "build_channels",
    "BaseNotificationChannel",
    "InvalidDestinationError",
    "normalize_phone",
    "extract_message_id",
    "WhatsAppChannel",
    "SMSChannel",
    "EmailChannel",
]
