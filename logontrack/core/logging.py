"""
Structured logging configuration using structlog.

Every entry carries the same base fields:
{
    "ts": "2024-01-10T09:00:00.123456Z",
    "level": "info",
    "service": "logontrack",
    "request_id": "uuid-v4",
    "event": "event.stored",
    "module": "logontrack.api.routes_events",
    "func_name": "collect_event",
    "lineno": 42,
    ...additional context...
}
"""
import logging
from typing import Any

import structlog

SERVICE_NAME = "logontrack"


def add_service_name(logger: Any, method_name: str, event_dict: dict) -> dict:
    """Add service name to all log entries."""
    event_dict["service"] = SERVICE_NAME
    return event_dict


def setup_logging(json_output: bool = True, level: str = "INFO") -> None:
    """
    Configure structured logging with standardized fields.

    Args:
        json_output: If True, output JSON logs. If False, use console format.
        level: Minimum level name (DEBUG, INFO, WARNING, ...).
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    shared_processors = [
        # request_id bound by the request-id middleware
        structlog.contextvars.merge_contextvars,
        add_service_name,
        structlog.processors.TimeStamper(fmt="iso", key="ts"),
        structlog.processors.add_log_level,
        structlog.processors.CallsiteParameterAdder(
            {
                structlog.processors.CallsiteParameter.MODULE,
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            }
        ),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_output:
        processors = shared_processors + [structlog.processors.JSONRenderer()]
    else:
        processors = shared_processors + [structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", level=log_level)

    # uvicorn access lines would duplicate the structured request logs
    logging.getLogger("uvicorn.access").handlers = []


def get_logger(name: str | None = None):
    """Get a configured structlog logger."""
    return structlog.get_logger(name)
