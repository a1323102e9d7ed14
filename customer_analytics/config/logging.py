"""
Logging for the Customer Analytics Service

structlog events and stdlib records (uvicorn, SQLAlchemy, Prefect) share
one processor chain and one stdout handler. Every event carries the
service, environment and version bound through ``structlog.contextvars``,
so rebuild and query logs can be told apart once aggregated.
"""

import logging
import sys
from typing import Any, List, Optional

import structlog
from structlog.processors import JSONRenderer, TimeStamper
from structlog.stdlib import ProcessorFormatter, add_log_level

from customer_analytics.config.settings import Settings, get_settings

# Loggers that install their own handlers or log every statement
ROUTED_LOGGERS = ["uvicorn", "uvicorn.error", "uvicorn.access"]
QUIET_LOGGERS = {"sqlalchemy.engine": logging.WARNING, "aiosqlite": logging.WARNING}


def shared_processors() -> List[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        add_log_level,
        TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def bind_service_context(settings: Settings) -> None:
    """Attach service identity to every event logged from this context."""
    structlog.contextvars.bind_contextvars(
        service=settings.app_name,
        environment=settings.app_env,
        version=settings.version,
    )


def configure_logging(log_level: Optional[str] = None) -> None:
    """
    Route structlog and stdlib logging to stdout.

    Args:
        log_level: Override log level (DEBUG, INFO, WARNING, ERROR)
    """
    settings = get_settings()
    level = (log_level or settings.monitoring.log_level).upper()
    numeric_level = getattr(logging, level, logging.INFO)
    processors = shared_processors()

    structlog.configure(
        processors=processors + [ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if settings.monitoring.log_format == "json":
        renderer = JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(ProcessorFormatter(processor=renderer, foreign_pre_chain=processors))

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(numeric_level)

    for name in ROUTED_LOGGERS:
        routed = logging.getLogger(name)
        routed.handlers = [handler]
        routed.propagate = False
        routed.setLevel(numeric_level)

    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(max(quiet_level, numeric_level))

    bind_service_context(settings)

    structlog.get_logger(__name__).info(
        "Logging configured",
        level=level,
        format=settings.monitoring.log_format,
    )
