"""
Structured logging setup.

Routes structlog through the standard library so the cache layer's
structlog events and the infrastructure modules' stdlib records share
one level and one handler.
"""

import logging
import sys
from typing import Optional

import structlog

from .config import Settings, get_settings


def setup_logging(settings: Optional[Settings] = None) -> None:
    """
    Configure stdlib logging and structlog from settings.

    JSON lines are emitted outside development and debug mode, a
    console renderer otherwise.
    """
    settings = settings or get_settings()
    level = logging.DEBUG if settings.DEBUG else getattr(logging, settings.LOG_LEVEL)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level, force=True)

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if settings.is_development or settings.DEBUG:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=settings.is_production,
    )
