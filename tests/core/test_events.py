"""Tests for domain events and the event bus."""

from datetime import UTC, datetime

import pytest

from plotdesk.core.events import DomainEvent, EventBus, PaymentRecorded
from plotdesk.core.exceptions import StorageUnavailableError, ValidationError


def _payment(**overrides) -> PaymentRecorded:
    data = {
        "payment_id": "P-1",
        "payment_type": "Advance In",
        "amount": 50000,
        "customer_name": "Ravi Patil",
        "customer_phone": "9876543210",
    }
    data.update(overrides)
    return PaymentRecorded(**data)


class TestPaymentRecorded:
    def test_payment_type_normalized(self):
        assert _payment().payment_type == "advance_in"
        assert _payment(payment_type="advance-payment").payment_type == "advance_payment"

    @pytest.mark.parametrize("payment_type", ["advance_in", "Advance Payment"])
    def test_is_advance_in(self, payment_type):
        assert _payment(payment_type=payment_type).is_advance_in is True

    def test_other_types_are_not_advance_in(self):
        assert _payment(payment_type="Full Payment").is_advance_in is False

    def test_is_received(self):
        assert _payment(status="received").is_received is True
        assert _payment().is_received is False

    def test_due_date_made_utc(self):
        event = _payment(due_date=datetime(2026, 4, 1, 10, 0))
        assert event.due_date == datetime(2026, 4, 1, 10, 0, tzinfo=UTC)

    def test_event_name(self):
        assert _payment().event_name == "PaymentRecorded"


class _OtherEvent(DomainEvent):
    pass


class TestEventBus:
    async def test_publish_to_subscribers_in_order(self):
        bus = EventBus()
        seen: list[str] = []

        async def first(event):
            seen.append("first")
            return 1

        async def second(event):
            seen.append("second")
            return 2

        bus.subscribe(PaymentRecorded, first)
        bus.subscribe(PaymentRecorded, second)

        results = await bus.publish(_payment())

        assert seen == ["first", "second"]
        assert results == [1, 2]

    async def test_publish_only_matching_type(self):
        bus = EventBus()
        calls = []

        async def handler(event):
            calls.append(event)

        bus.subscribe(PaymentRecorded, handler)
        assert await bus.publish(_OtherEvent()) == []
        assert calls == []

    async def test_failing_handler_isolated(self):
        bus = EventBus()

        async def broken(event):
            raise RuntimeError("boom")

        async def healthy(event):
            return "ok"

        bus.subscribe(PaymentRecorded, broken)
        bus.subscribe(PaymentRecorded, healthy)

        assert await bus.publish(_payment()) == [None, "ok"]

    async def test_domain_error_reaches_publisher(self):
        bus = EventBus()
        calls = []

        async def rejecting(event):
            raise ValidationError("customer_name", "is required", "   ")

        async def later(event):
            calls.append(event)

        bus.subscribe(PaymentRecorded, rejecting)
        bus.subscribe(PaymentRecorded, later)

        with pytest.raises(ValidationError) as exc_info:
            await bus.publish(_payment())

        assert exc_info.value.details["field"] == "customer_name"
        assert calls == []

    async def test_storage_outage_reaches_publisher(self):
        bus = EventBus()

        async def store_down(event):
            raise StorageUnavailableError("sqlite", "database is locked")

        bus.subscribe(PaymentRecorded, store_down)

        with pytest.raises(StorageUnavailableError):
            await bus.publish(_payment())

    def test_subscribe_is_idempotent(self):
        bus = EventBus()

        async def handler(event):
            return None

        bus.subscribe(PaymentRecorded, handler)
        bus.subscribe(PaymentRecorded, handler)
        assert bus.handler_count(PaymentRecorded) == 1

        bus.unsubscribe(PaymentRecorded, handler)
        assert bus.handler_count(PaymentRecorded) == 0
