"""
Structured logging configuration using structlog.

Colored console output in development, JSON lines everywhere else.
Channel credentials are masked before any renderer sees an event.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor

from plotdesk.config.settings import get_settings

# Event keys whose values are never written to logs
SECRET_KEYS = frozenset({"api_key", "authorization", "token", "password", "secret"})

_MASK = "***"


def add_app_context(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add application context to log events."""
    settings = get_settings()
    event_dict["app"] = settings.app_name
    event_dict["environment"] = settings.environment
    return event_dict


def redact_secrets(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Mask credential values, including inside nested dicts such as headers."""

    def _mask(value: Any) -> Any:
        if isinstance(value, dict):
            return {
                k: (_MASK if str(k).lower() in SECRET_KEYS and v else _mask(v))
                for k, v in value.items()
            }
        return value

    for key in list(event_dict):
        if key.lower() in SECRET_KEYS and event_dict[key]:
            event_dict[key] = _MASK
        else:
            event_dict[key] = _mask(event_dict[key])
    return event_dict


def configure_logging(json_output: bool | None = None) -> None:
    """
    Configure structlog for the application.

    Args:
        json_output: Force JSON (True) or console (False) rendering;
            default depends on the environment
    """
    settings = get_settings()
    if json_output is None:
        json_output = settings.environment != "development"

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        add_app_context,
        redact_secrets,
    ]

    if json_output:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ]
    else:
        processors = shared_processors + [structlog.dev.ConsoleRenderer(colors=True)]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level),
    )

    # Channel HTTP calls are logged by the channels themselves
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def bind_request_context(**values: Any) -> None:
    """Attach values (request id, reminder id) to every log line of this task."""
    structlog.contextvars.bind_contextvars(**values)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
