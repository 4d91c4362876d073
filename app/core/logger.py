"""Logging configuration for the application."""

import logging
import sys

import structlog

from app.core.config import LogFormatEnum, settings

# Applied to standard library records before rendering.
SHARED_PROCESSORS = [
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.UnicodeDecoder(),
]


def build_formatter(log_format: LogFormatEnum) -> structlog.stdlib.ProcessorFormatter:
    """Formatter rendering every record as a JSON object or a console line."""
    if log_format == LogFormatEnum.json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=SHARED_PROCESSORS,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )


def setup_logging() -> None:
    """Configure structured logging once, from ``log_level`` and ``log_format``.

    Modules keep using ``logging.getLogger(__name__)``; their records go
    through the structlog formatter on the root handler.
    """
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *SHARED_PROCESSORS,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(build_formatter(settings.log_format))
    logging.basicConfig(
        handlers=[handler],
        level=getattr(logging, settings.log_level.value),
        force=True,
    )
