"""
core/logging.py
---------------
structlog on top of the stdlib root logger.

Every event carries the service name and environment. While a request is
being served it also carries the request id bound by RequestIDMiddleware,
picked up from structlog's context vars.

DEBUG=true prints coloured console lines, otherwise one JSON object per line.
"""

import logging
import sys

import structlog

from bizdesk.core.config import settings

# Libraries that are chatty at INFO outside of development
NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "passlib", "aiosqlite")


def add_service_context(logger, method_name, event_dict):
    event_dict.setdefault("service", settings.APP_NAME)
    event_dict.setdefault("env", settings.APP_ENV)
    return event_dict


def configure_logging() -> None:
    level = logging.DEBUG if settings.DEBUG else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    if not settings.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    processors = [
        structlog.contextvars.merge_contextvars,
        add_service_context,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if settings.DEBUG:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = __name__):
    return structlog.get_logger(name)


def bind_request_id(request_id: str) -> None:
    """Start a fresh per-request context; earlier bindings are dropped."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)
