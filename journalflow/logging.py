"""
Structured logging for journalflow.

Built on structlog. Call ``get_logger(__name__)`` at module level and pass
context as keyword arguments::

    logger = get_logger(__name__)
    logger.info("reviewer_assigned", paper_id=3, reviewer_id=7)

Environment:
    LOG_LEVEL: DEBUG, INFO, WARNING, ERROR
    LOG_FORMAT: console or json
"""

import logging
import sys

import structlog
from structlog.types import Processor

from journalflow.config import get_settings

_configured = False


def _shared_processors() -> list[Processor]:
    return [
        structlog.stdlib.filter_by_level,
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]


def configure_logging(level: str | None = None, fmt: str | None = None) -> None:
    """Configure structlog on top of the standard logging module. Safe to call again."""
    global _configured

    settings = get_settings()
    level_name = (level or settings.LOG_LEVEL).upper()
    log_level = getattr(logging, level_name, logging.INFO)
    fmt = (fmt or settings.LOG_FORMAT).lower()

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=log_level)
    logging.getLogger("journalflow").setLevel(log_level)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    processors = _shared_processors()
    if fmt == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
        context_class=dict,
    )
    _configured = True


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    if not _configured:
        configure_logging()
    return structlog.get_logger(name)
