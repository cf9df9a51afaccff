"""
Structured logging configuration.

Sets up structlog on top of stdlib logging. Production (or LOG_FORMAT=json)
emits JSON lines; development gets the human-readable console renderer.

Usage:
    from shiftwise.core.logging_config import setup_logging, get_logger

    # At application startup
    setup_logging()

    # In your code
    logger = get_logger(__name__)
    logger.info("guest_goal_created", goal_id=goal.id)
"""

import logging
import sys
from contextlib import contextmanager
from typing import Iterator

import structlog
from pythonjsonlogger import jsonlogger

from shiftwise.config import settings


def setup_logging() -> None:
    """
    Configure structured logging for the application.

    Sets up both stdlib logging and structlog. Service modules that use
    ``logging.getLogger(__name__)`` share the same stdout stream and level.
    """
    use_json = settings.LOG_FORMAT == "json" or settings.ENVIRONMENT == "production"

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    )

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if use_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    _configure_uvicorn_logging(use_json)

    if settings.ENVIRONMENT == "production":
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def _configure_uvicorn_logging(use_json: bool = False) -> None:
    """Configure uvicorn's access and error logs with JSON formatting."""
    if use_json:
        formatter = jsonlogger.JsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s",
            rename_fields={"asctime": "timestamp", "levelname": "level"},
        )
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)

        for logger_name in ["uvicorn", "uvicorn.access", "uvicorn.error"]:
            logger = logging.getLogger(logger_name)
            logger.handlers.clear()
            logger.addHandler(handler)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Structured logger with context support
    """
    return structlog.get_logger(name)


@contextmanager
def bound_log_context(**values) -> Iterator[None]:
    """
    Bind key/value pairs into structlog's contextvars for the duration of a block.

    Every structlog event emitted inside the block (from any module) carries
    the bound values, e.g. ``migration_run_id`` for one reconciliation run.
    """
    structlog.contextvars.bind_contextvars(**values)
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars(*values.keys())
