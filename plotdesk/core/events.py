"""
Domain events and an in-process async event bus.

Producers (the payment write path) publish events explicitly; consumers
such as the payment reminder factory subscribe to them. A handler that
rejects the event with a domain error (invalid data, storage down) fails
the publish so the producer sees it; any other handler failure is logged
and isolated from the publisher and the remaining handlers.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel, Field, field_validator

from plotdesk.config import get_logger
from plotdesk.core.entities.notification import ensure_utc, utc_now
from plotdesk.core.exceptions import PlotDeskError

logger = get_logger(__name__)


class DomainEvent(BaseModel):
    """Base class for domain events."""

    occurred_at: datetime = Field(default_factory=utc_now)

    @property
    def event_name(self) -> str:
        return type(self).__name__


ADVANCE_IN_PAYMENT_TYPES = frozenset({"advance_in", "advance_payment"})


class PaymentRecorded(DomainEvent):
    """A payment was saved by the payment module."""

    payment_id: str
    payment_type: str
    amount: float = Field(ge=0)
    status: str = "Pending"
    customer_name: str
    customer_phone: str | None = None
    plot_id: str | None = None
    plot_number: str | None = None
    due_date: datetime | None = None
    description: str | None = None

    @field_validator("payment_type", mode="before")
    @classmethod
    def _normalize_payment_type(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower().replace(" ", "_").replace("-", "_")
        return v

    @field_validator("due_date")
    @classmethod
    def _due_utc(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v) if v is not None else None

    @property
    def is_advance_in(self) -> bool:
        return self.payment_type in ADVANCE_IN_PAYMENT_TYPES

    @property
    def is_received(self) -> bool:
        return self.status.strip().lower() == "received"


E = TypeVar("E", bound=DomainEvent)
EventHandler = Callable[[Any], Awaitable[Any]]


class EventBus:
    """In-process publish/subscribe for domain events."""

    def __init__(self) -> None:
        self._handlers: dict[type[DomainEvent], list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Callable[[E], Awaitable[Any]]) -> None:
        if handler not in self._handlers[event_type]:
            self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: type[E], handler: Callable[[E], Awaitable[Any]]) -> None:
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def handler_count(self, event_type: type[DomainEvent]) -> int:
        return len(self._handlers.get(event_type, []))

    async def publish(self, event: DomainEvent) -> list[Any]:
        """
        Deliver an event to its subscribers, in subscription order.

        Returns:
            Each handler's return value; None for handlers that failed

        Raises:
            PlotDeskError: a handler rejected the event; later handlers are skipped
        """
        results: list[Any] = []
        for handler in list(self._handlers.get(type(event), [])):
            handler_name = getattr(handler, "__qualname__", repr(handler))
            try:
                results.append(await handler(event))
            except PlotDeskError as e:
                logger.warning(
                    "event_rejected",
                    event_name=event.event_name,
                    handler=handler_name,
                    error_code=e.code,
                    error=e.message,
                )
                raise
            except Exception as e:
                logger.error(
                    "event_handler_failed",
                    event_name=event.event_name,
                    handler=handler_name,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                results.append(None)

        logger.debug("event_published", event_name=event.event_name, handlers=len(results))
        return results
