"""Application use cases."""

from plotdesk.application.use_cases.create_payment_reminder import (
    CreatePaymentReminderUseCase,
    PaymentReminderResult,
)

__all__ = [
    "CreatePaymentReminderUseCase",
    "PaymentReminderResult",
]
