"""API middleware."""

from plotdesk.api.middleware.error_handler import ErrorHandlerMiddleware, setup_exception_handlers
from plotdesk.api.middleware.logging import LoggingMiddleware

__all__ = ["LoggingMiddleware", "ErrorHandlerMiddleware", "setup_exception_handlers"]
