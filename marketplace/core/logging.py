"""
Structured logging configuration with structlog

Every process (order service, payment worker) calls configure_logging() once at
startup. Log entries pass through a processor pipeline that enriches them with
service metadata and request-scoped context (request_id, order_id) bound through
structlog.contextvars, then render as JSON for production or as colored console
output for local development.
"""

import logging
import sys
from typing import Any

import orjson
import structlog
from structlog.types import EventDict, Processor

from marketplace.core.config import settings


def add_service_context(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Processor: add service name, environment and version to every entry."""
    event_dict["service_name"] = settings.SERVICE_NAME
    event_dict["environment"] = settings.ENVIRONMENT
    event_dict["version"] = settings.SERVICE_VERSION
    return event_dict


def add_log_level(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    if method_name:
        event_dict["level"] = method_name.upper()
    return event_dict


def rename_event_key(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """
    Processor: rename 'event' to 'message'.

    structlog stores the log message under 'event', log aggregators expect
    'message'.
    """
    if "event" in event_dict:
        event_dict["message"] = event_dict.pop("event")
    return event_dict


def drop_color_message_key(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    event_dict.pop("color_message", None)
    return event_dict


def orjson_dumps(obj: Any, **kwargs: Any) -> str:
    # default=str covers Decimal and UUID values bound into log entries
    return orjson.dumps(obj, default=str).decode("utf-8")


def configure_logging() -> None:
    """
    Configure stdlib logging and structlog for the current process.

    Call this ONCE at process startup, before the first get_logger() call.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.LOG_LEVEL.upper()),
    )

    # Access lines are emitted by LoggingMiddleware as structured entries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("aiokafka").setLevel(logging.WARNING)
    logging.getLogger("aiokafka.consumer.group_coordinator").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_service_context,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_log_level,
        structlog.processors.format_exc_info,
        rename_event_key,
        drop_color_message_key,
    ]

    if settings.LOG_FORMAT == "console":
        renderer: Processor = structlog.dev.ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.plain_traceback,
        )
    else:
        renderer = structlog.processors.JSONRenderer(serializer=orjson_dumps)

    structlog.configure(
        processors=shared_processors + [renderer],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
        wrapper_class=structlog.stdlib.BoundLogger,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structlog logger instance.

    Usage:
        logger = get_logger(__name__)
        logger.info("order_created", order_id=str(order.id), buyer_id=order.buyer_id)
    """
    return structlog.get_logger(name)
