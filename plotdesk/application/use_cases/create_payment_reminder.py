"""
Create Payment Reminder Use Case.

Consumes PaymentRecorded events from the payment module and creates the
follow-up reminder for advance payments that are still outstanding.
"""

from dataclasses import dataclass
from datetime import tzinfo

from plotdesk.config import get_logger, get_settings
from plotdesk.core.entities.notification import NotificationChannelName, utc_now
from plotdesk.core.entities.reminder import (
    ReminderCategory,
    ReminderType,
    TransactionType,
    derive_reminder_date,
)
from plotdesk.core.events import EventBus, PaymentRecorded
from plotdesk.core.interfaces.storage import IReminderStore
from plotdesk.core.services.messages import format_amount, format_date
from plotdesk.infrastructure.storage.base import build_reminder

logger = get_logger(__name__)


@dataclass
class PaymentReminderResult:
    """Result of handling one payment event."""

    created: bool = False
    reminder_id: int | None = None
    transaction_id: str | None = None
    skipped_reason: str | None = None


class CreatePaymentReminderUseCase:
    """
    Reminder factory for recorded payments.

    Only advance-in payments with a due date that are not yet received get
    a reminder, and only when the reminder date is still ahead. The payment
    id doubles as the reminder's transaction id, so a replayed event does
    not create a second reminder.
    """

    def __init__(
        self,
        reminder_store: IReminderStore | None = None,
        timezone: tzinfo | None = None,
    ):
        self._rem_store = reminder_store
        self.timezone = timezone or get_settings().reminder.tzinfo

    async def _get_rem_store(self) -> IReminderStore:
        if self._rem_store is None:
            from plotdesk.application.services import get_reminder_store

            self._rem_store = await get_reminder_store()
        return self._rem_store

    def register(self, bus: EventBus) -> None:
        """Subscribe this factory to payment events."""
        bus.subscribe(PaymentRecorded, self.execute)

    async def execute(self, event: PaymentRecorded) -> PaymentReminderResult:
        """
        Create a payment reminder for the event when it qualifies.

        Args:
            event: Payment saved by the payment module

        Returns:
            PaymentReminderResult with the created id or the skip reason

        Raises:
            ValidationError: the payment data cannot form a valid reminder
            StorageError: the reminder could not be stored
        """
        if not event.is_advance_in:
            return PaymentReminderResult(skipped_reason="not_advance_in")
        if event.due_date is None:
            return PaymentReminderResult(skipped_reason="no_due_date")
        if event.is_received:
            return PaymentReminderResult(skipped_reason="already_received")
        if not event.customer_phone or not event.customer_phone.strip():
            return PaymentReminderResult(skipped_reason="no_customer_phone")

        if derive_reminder_date(event.due_date) <= utc_now():
            logger.info(
                "payment_reminder_skipped_past",
                payment_id=event.payment_id,
                due_date=event.due_date.isoformat(),
            )
            return PaymentReminderResult(skipped_reason="reminder_date_passed")

        transaction_id = f"PAY-{event.payment_id}"
        store = await self._get_rem_store()

        existing = await store.get_by_transaction_id(transaction_id)
        if existing is not None:
            return PaymentReminderResult(
                reminder_id=existing.id,
                transaction_id=transaction_id,
                skipped_reason="already_exists",
            )

        plot = event.plot_number or "-"
        due_text = format_date(event.due_date, self.timezone)
        description = (
            f"Reminder: Payment of {format_amount(event.amount)} is due on "
            f"{due_text} for Plot {plot}. Please make the payment to avoid "
            "any inconvenience."
        )
        reminder = build_reminder(
            {
                "transaction_id": transaction_id,
                "title": f"Payment Reminder - Plot {plot}",
                "description": description,
                "customer_name": event.customer_name,
                "customer_phone": event.customer_phone,
                "due_date": event.due_date,
                "transaction_type": TransactionType.PAYMENT_DUE,
                "category": ReminderCategory.PAYMENT,
                "type": ReminderType.PAYMENT,
                "amount": event.amount,
                "plot_id": event.plot_id,
                "plot_number": event.plot_number,
                "payment_id": event.payment_id,
                "auto_reminder": True,
                "reminder_method": [
                    NotificationChannelName.WHATSAPP,
                    NotificationChannelName.SMS,
                ],
            }
        )
        created = await store.create(reminder)

        logger.info(
            "payment_reminder_created",
            payment_id=event.payment_id,
            reminder_id=created.id,
            due_date=event.due_date.isoformat(),
        )
        return PaymentReminderResult(
            created=True,
            reminder_id=created.id,
            transaction_id=created.transaction_id,
        )
