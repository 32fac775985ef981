"""Structured logging setup."""

import logging
import sys

import structlog

from catalog_api.infrastructure.config import settings


def configure_logging() -> None:
    """Configure stdlib logging and structlog processors.

    Request-scoped values bound with ``structlog.contextvars`` (such as the
    request ID) are merged into every event.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(message)s",
        stream=sys.stderr,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.log_json and not settings.debug
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
