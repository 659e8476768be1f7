"""
Notification dispatcher.

Renders a reminder's message and fans it out over the channels named in
its reminder_method, always in WhatsApp, SMS, Email order.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from datetime import tzinfo
from typing import Any

from plotdesk.config import get_logger
from plotdesk.core.entities.notification import (
    CHANNEL_ORDER,
    NotificationChannelName,
    NotificationResult,
)
from plotdesk.core.entities.reminder import Reminder
from plotdesk.core.interfaces.notification import INotificationChannel
from plotdesk.core.services.messages import (
    BUSINESS_TIMEZONE,
    DEFAULT_COMPANY_NAME,
    format_reminder_message,
    format_test_message,
)

logger = get_logger(__name__)


class NotificationDispatcher:
    """
    Layer-pure dispatcher over injected notification channels.

    dispatch() returns one result per attempted channel and never raises
    for delivery problems; callers decide what success means.
    """

    def __init__(
        self,
        channels: Mapping[NotificationChannelName, INotificationChannel],
        company_name: str = DEFAULT_COMPANY_NAME,
        channel_timeout: float | None = None,
        timezone: tzinfo = BUSINESS_TIMEZONE,
    ) -> None:
        self._channels = dict(channels)
        self.company_name = company_name
        self.timezone = timezone
        # Upper bound on one channel call, on top of the channel's own timeout
        self.channel_timeout = channel_timeout

    @property
    def channels(self) -> dict[NotificationChannelName, INotificationChannel]:
        return dict(self._channels)

    def render(self, reminder: Reminder) -> str:
        return format_reminder_message(reminder, self.company_name, self.timezone)

    async def _send_guarded(
        self,
        channel_name: NotificationChannelName,
        destination: str | None,
        message: str,
    ) -> NotificationResult:
        channel = self._channels.get(channel_name)
        if channel is None:
            return NotificationResult(
                channel=channel_name, success=False, error="Channel not configured"
            )
        if not destination:
            return NotificationResult(
                channel=channel_name, success=False, error="No destination for channel"
            )
        try:
            async with asyncio.timeout(self.channel_timeout):
                return await channel.send(destination, message)
        except TimeoutError:
            logger.error(
                "notification_channel_timeout",
                channel=channel_name.value,
                destination=destination,
                timeout=self.channel_timeout,
            )
            return NotificationResult(
                channel=channel_name,
                success=False,
                error=f"Timed out after {self.channel_timeout}s",
            )
        except Exception as e:
            logger.error(
                "notification_channel_error",
                channel=channel_name.value,
                destination=destination,
                error=str(e),
                error_type=type(e).__name__,
            )
            return NotificationResult(
                channel=channel_name, success=False, error=str(e) or type(e).__name__
            )

    async def dispatch(self, reminder: Reminder) -> list[NotificationResult]:
        """
        Send a reminder over its configured channels.

        Args:
            reminder: Reminder to deliver

        Returns:
            One result per channel, in dispatch order. Empty when the
            reminder has no phone number.
        """
        if not reminder.customer_phone or not reminder.customer_phone.strip():
            logger.info("dispatch_skipped_no_phone", reminder_id=reminder.id)
            return []

        message = self.render(reminder)
        results: list[NotificationResult] = []

        for channel_name in CHANNEL_ORDER:
            if channel_name not in reminder.reminder_method:
                continue
            result = await self._send_guarded(
                channel_name, reminder.destination_for(channel_name), message
            )
            results.append(result)

        logger.info(
            "reminder_dispatched",
            reminder_id=reminder.id,
            channels=[r.channel.value for r in results],
            succeeded=sum(1 for r in results if r.success),
            failed=sum(1 for r in results if not r.success),
        )
        return results

    async def send_test(
        self,
        phone: str,
        customer_name: str = "Test Customer",
        email: str | None = None,
    ) -> list[NotificationResult]:
        """Send the test message over every phone channel, plus email when given."""
        message = format_test_message(customer_name, self.company_name)
        results: list[NotificationResult] = []

        for channel_name in CHANNEL_ORDER:
            if channel_name not in self._channels:
                continue
            if channel_name == NotificationChannelName.EMAIL:
                if not email:
                    continue
                destination = email
            else:
                destination = phone
            results.append(await self._send_guarded(channel_name, destination, message))

        logger.info("test_notification_sent", channels=[r.channel.value for r in results])
        return results

    def channel_config(self) -> dict[str, Any]:
        """Enabled/configured state of every channel, without credentials."""
        return {
            name.value: self._channels[name].config_summary()
            for name in CHANNEL_ORDER
            if name in self._channels
        }
