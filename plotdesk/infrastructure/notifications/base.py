"""
Base notification channel with timeout and retry patterns.

Provides the shared send pipeline for all HTTP notification transports:
- Destination normalization
- Simulated sends when disabled or without credentials
- Per-attempt timeout and retries with exponential backoff
- Every failure reported as a NotificationResult, never raised
"""

import asyncio
import re
from abc import ABC, abstractmethod
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from plotdesk.config import get_logger, get_settings
from plotdesk.core.entities.notification import NotificationChannelName, NotificationResult
from plotdesk.core.interfaces import INotificationChannel

logger = get_logger(__name__)

_NON_DIGITS = re.compile(r"\D")


class InvalidDestinationError(ValueError):
    """Destination cannot be used by the channel."""


def normalize_phone(phone: str, country_code: str = "91") -> str:
    """
    Normalize a phone number to digits with a country code.

    10 digits get the default country code; 11 digits with a trunk 0 lose
    the 0 and get the country code; anything else is left as digits.
    """
    digits = _NON_DIGITS.sub("", phone or "")
    if len(digits) == 10:
        return f"{country_code}{digits}"
    if len(digits) == 11 and digits.startswith("0"):
        return f"{country_code}{digits[1:]}"
    return digits


def extract_message_id(payload: Any) -> str | None:
    """Pull a provider message id out of a JSON response body."""
    if not isinstance(payload, dict):
        return None
    for key in ("messageId", "message_id", "id"):
        value = payload.get(key)
        if value:
            return str(value)
    return None


class BaseNotificationChannel(INotificationChannel, ABC):
    """
    Base class for HTTP notification channels.

    Subclasses supply the endpoint path and request body; the base class
    owns the fail-open simulation, retries, timeout and error capture.
    """

    name: NotificationChannelName
    endpoint: str = "send"

    def __init__(
        self,
        enabled: bool,
        api_url: str,
        api_key: str | None,
        timeout: float | None = None,
        max_retries: int | None = None,
        retry_delay: float | None = None,
        retry_multiplier: float | None = None,
        country_code: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self._enabled = enabled
        self.api_url = api_url.rstrip("/")
        self._api_key = api_key
        self.timeout = timeout if timeout is not None else settings.notify.timeout
        self.max_retries = max_retries if max_retries is not None else settings.notify.max_retries
        self.retry_delay = retry_delay if retry_delay is not None else settings.notify.retry_delay
        self.retry_multiplier = (
            retry_multiplier if retry_multiplier is not None else settings.notify.retry_multiplier
        )
        self.country_code = country_code or settings.reminder.default_country_code
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    @property
    def live(self) -> bool:
        """True when sends go over the network."""
        return self.enabled and self.configured

    def normalize_destination(self, destination: str) -> str:
        normalized = normalize_phone(destination, self.country_code)
        if not normalized:
            raise InvalidDestinationError("phone number is empty")
        return normalized

    @abstractmethod
    def build_payload(self, destination: str, message: str) -> dict[str, Any]:
        """Request body for one message."""
        pass

    def config_summary(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "configured": self.configured,
            "api_url": self.api_url,
        }

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    def _log_retry(self, retry_state: RetryCallState) -> None:
        """Log retry attempts."""
        logger.warning(
            "notification_retry",
            channel=self.name.value,
            attempt=retry_state.attempt_number,
            error=str(retry_state.outcome.exception()) if retry_state.outcome else None,
        )

    async def _post(self, payload: dict[str, Any]) -> str | None:
        """POST one message with a per-attempt timeout; returns the message id."""
        url = f"{self.api_url}/{self.endpoint}"
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            async with asyncio.timeout(self.timeout):
                response = await client.post(url, json=payload, headers=self._headers())

        if response.status_code >= 500:
            raise ConnectionError(f"HTTP {response.status_code}: {response.text[:200]}")
        if response.status_code >= 400:
            raise httpx.HTTPStatusError(
                f"HTTP {response.status_code}: {response.text[:200]}",
                request=response.request,
                response=response,
            )

        try:
            return extract_message_id(response.json())
        except ValueError:
            return None

    def _retrying(self) -> AsyncRetrying:
        """max_retries counts every attempt; waits grow retry_delay * retry_multiplier**n."""
        return AsyncRetrying(
            stop=stop_after_attempt(max(1, self.max_retries)),
            wait=wait_exponential(
                multiplier=self.retry_delay,
                exp_base=self.retry_multiplier,
                min=self.retry_delay,
                max=self.retry_delay * (self.retry_multiplier**3),
            ),
            retry=retry_if_exception_type(
                (TimeoutError, ConnectionError, httpx.TransportError)
            ),
            before_sleep=self._log_retry,
            reraise=True,
        )

    async def _post_with_retry(self, payload: dict[str, Any]) -> str | None:
        async for attempt in self._retrying():
            with attempt:
                return await self._post(payload)
        return None

    async def send(self, destination: str, message: str) -> NotificationResult:
        """Deliver a message; failures come back as success=False."""
        try:
            normalized = self.normalize_destination(destination)
        except InvalidDestinationError as e:
            logger.warning(
                "notification_invalid_destination",
                channel=self.name.value,
                destination=destination,
                error=str(e),
            )
            return NotificationResult(channel=self.name, success=False, error=str(e))

        if not self.live:
            logger.info(
                "notification_simulated",
                channel=self.name.value,
                destination=normalized,
                enabled=self.enabled,
                configured=self.configured,
            )
            return NotificationResult(channel=self.name, success=True, simulated=True)

        try:
            message_id = await self._post_with_retry(self.build_payload(normalized, message))
        except TimeoutError:
            error = f"Timed out after {self.timeout}s"
        except Exception as e:
            error = str(e) or type(e).__name__
        else:
            logger.info(
                "notification_sent",
                channel=self.name.value,
                destination=normalized,
                message_id=message_id,
            )
            return NotificationResult(channel=self.name, success=True, message_id=message_id)

        logger.error(
            "notification_failed",
            channel=self.name.value,
            destination=normalized,
            error=error,
        )
        return NotificationResult(channel=self.name, success=False, error=error)
