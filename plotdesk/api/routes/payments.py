"""
Payment event endpoint.

The payment module posts here after saving a payment; the event bus hands
it to the reminder factory.
"""

from fastapi import APIRouter, Depends, status

from plotdesk.api.dependencies import get_bus
from plotdesk.application.dto.requests import PaymentRecordedRequest
from plotdesk.application.dto.responses import PaymentEventResponse
from plotdesk.application.use_cases import PaymentReminderResult
from plotdesk.core.events import EventBus, PaymentRecorded

router = APIRouter(prefix="/api/payments", tags=["payments"])


@router.post(
    "/events",
    response_model=PaymentEventResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def payment_recorded(
    request: PaymentRecordedRequest,
    bus: EventBus = Depends(get_bus),
) -> PaymentEventResponse:
    """
    Publish a PaymentRecorded event.

    Payment data that cannot form a reminder answers 400, and a storage
    outage 503; skipped payments answer 202 with the reason.
    """
    results = await bus.publish(PaymentRecorded.model_validate(request.model_dump()))

    outcome = next((r for r in results if isinstance(r, PaymentReminderResult)), None)
    if outcome is None:
        return PaymentEventResponse(reminder_created=False, skipped_reason="not_handled")
    return PaymentEventResponse(
        reminder_created=outcome.created,
        reminder_id=outcome.reminder_id,
        transaction_id=outcome.transaction_id,
        skipped_reason=outcome.skipped_reason,
    )
