"""
Structured logging configuration using structlog.

structlog loggers (the resolution engine) and plain stdlib loggers
(every other module) share one stderr handler and one renderer:
pretty console output in development, JSON lines in production.
stdout is reserved for lookup results.
"""

import logging
import sys

import structlog
from structlog.types import Processor

from tickisinator.config.settings import get_settings

# Third-party loggers that are noisy at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "asyncio")


def setup_logging(level: str | None = None) -> None:
    """
    Configure logging for the process.

    Args:
        level: Override for the configured LOG_LEVEL (e.g. "DEBUG" for --debug)

    Usage:
        setup_logging()
        logger = structlog.get_logger(__name__)
        logger.info("Store hit", designator="ticker:AAPL", security_id=1)
    """
    settings = get_settings()
    log_level = level or settings.log_level

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.is_production:
        render: list[Processor] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        render = [structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())]

    structlog.configure(
        processors=shared_processors + [
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *render],
        )
    )
    logging.basicConfig(
        handlers=[handler],
        level=getattr(logging, log_level),
        force=True,
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_context(**kwargs) -> None:
    """Attach fields to every log line until clear_context() is called."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
