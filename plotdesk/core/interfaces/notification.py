"""
Abstract interface for notification channels.

A channel delivers one text message to one destination over one
transport and reports the outcome as data.
"""

from abc import ABC, abstractmethod
from typing import Any

from plotdesk.core.entities.notification import NotificationChannelName, NotificationResult


class INotificationChannel(ABC):
    """
    Abstract notification channel.

    send() never raises: transport errors, timeouts and bad destinations
    all come back as NotificationResult(success=False).
    """

    name: NotificationChannelName

    @property
    @abstractmethod
    def enabled(self) -> bool:
        """Whether the channel is administratively enabled."""
        pass

    @property
    @abstractmethod
    def configured(self) -> bool:
        """Whether credentials are present."""
        pass

    @abstractmethod
    def normalize_destination(self, destination: str) -> str:
        """Normalize a phone number or address for this transport."""
        pass

    @abstractmethod
    async def send(self, destination: str, message: str) -> NotificationResult:
        """Deliver a message and report the outcome."""
        pass

    @abstractmethod
    def config_summary(self) -> dict[str, Any]:
        """Channel configuration without credentials."""
        pass
