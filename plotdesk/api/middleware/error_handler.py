"""
Error responses for the reminder API.

Every failure leaves the API as an ErrorResponse body carrying a
machine-readable ``error_code``, the message, a recovery hint and the
request path. Delivery failures never get here: channels return them as
failed notification results.
"""

import traceback
from collections.abc import Awaitable, Callable

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from plotdesk.application.dto.responses import ErrorResponse
from plotdesk.config import get_logger
from plotdesk.core.exceptions import (
    DuplicateReminderError,
    PlotDeskError,
    ReminderBusyError,
    ReminderClosedError,
    ReminderNotFoundError,
    StorageUnavailableError,
    ValidationError,
)

logger = get_logger(__name__)


# Checked in order; anything else from the domain is a 500
DOMAIN_STATUS: tuple[tuple[type[PlotDeskError], int], ...] = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (ReminderNotFoundError, status.HTTP_404_NOT_FOUND),
    (DuplicateReminderError, status.HTTP_409_CONFLICT),
    (ReminderBusyError, status.HTTP_409_CONFLICT),
    (ReminderClosedError, status.HTTP_409_CONFLICT),
    (StorageUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
)

# Codes for errors raised by the framework itself (unknown route, wrong method)
HTTP_STATUS_CODES: dict[int, str] = {
    400: "BAD_REQUEST",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "UNPROCESSABLE_ENTITY",
}

HINTS: dict[str, str] = {
    "REMINDER_NOT_FOUND": "List reminders with GET /api/reminders to find a valid id.",
    "DUPLICATE_REMINDER": "This transaction already has a reminder. Update it with PUT instead.",
    "REMINDER_BUSY": "A send for this reminder is in progress. Try again shortly.",
    "REMINDER_CLOSED": "Completed or cancelled reminders are not sent.",
    "STORAGE_UNAVAILABLE": "The reminder database is unreachable. Try again later.",
    "VALIDATION_ERROR": "Fix the named field and resend the request.",
    "NOT_FOUND": "No such endpoint. Reminder routes live under /api/reminders.",
    "METHOD_NOT_ALLOWED": "This endpoint does not accept that HTTP method.",
}


def _hint(error_code: str, status_code: int) -> str | None:
    if error_code in HINTS:
        return HINTS[error_code]
    if status_code >= 500:
        return "Check the server logs for this request id."
    return None


def _domain_status(exc: PlotDeskError) -> int:
    for exc_type, code in DOMAIN_STATUS:
        if isinstance(exc, exc_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _respond(
    request: Request,
    status_code: int,
    error_code: str,
    message: str,
    detail: str | None = None,
) -> JSONResponse:
    body = ErrorResponse(
        error_code=error_code,
        message=message,
        hint=_hint(error_code, status_code),
        detail=detail,
        path=request.url.path,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def error_response(request: Request, exc: Exception) -> JSONResponse:
    """Turn a domain error, or anything unexpected, into an ErrorResponse."""
    if isinstance(exc, PlotDeskError):
        status_code = _domain_status(exc)
        error_code, message = exc.code, exc.message
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        error_code, message = "INTERNAL_ERROR", str(exc) or exc.__class__.__name__

    request_id = getattr(request.state, "request_id", None)
    if status_code >= 500:
        logger.error(
            "request_failed",
            request_id=request_id,
            path=request.url.path,
            error_code=error_code,
            error=message,
            traceback=traceback.format_exc(),
        )
    else:
        logger.warning(
            "request_rejected",
            request_id=request_id,
            path=request.url.path,
            error_code=error_code,
            error=message,
        )

    detail = exc.details.get("field") if isinstance(exc, ValidationError) else None
    return _respond(request, status_code, error_code, message, detail)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Catches whatever the exception handlers did not."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            return error_response(request, e)


def setup_exception_handlers(app: FastAPI) -> None:
    """Register the domain, request-validation and HTTP error handlers."""

    @app.exception_handler(PlotDeskError)
    async def domain_exception_handler(request: Request, exc: PlotDeskError) -> JSONResponse:
        return error_response(request, exc)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        """Pydantic rejected the body or query; list every offending field."""
        problems = [
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        ]
        return _respond(
            request,
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "VALIDATION_ERROR",
            "Request validation failed",
            detail="; ".join(problems),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        error_code = HTTP_STATUS_CODES.get(exc.status_code, "HTTP_ERROR")
        return _respond(
            request,
            exc.status_code,
            error_code,
            str(exc.detail) if exc.detail else "An error occurred",
        )
