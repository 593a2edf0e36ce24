"""Structured logging configuration using structlog."""

import logging
import sys

import structlog

from shared_types import LogLevel


def _level_number(level: str | LogLevel) -> int:
    """Map a facter or stdlib level name to a stdlib level number."""
    try:
        name = LogLevel(str(level).lower()).stdlib_name
    except ValueError:
        name = str(level).upper()
    return getattr(logging, name, logging.WARNING)


def setup_logging(level: str | LogLevel = LogLevel.WARNING, json_mode: bool = False) -> None:
    """Configure structlog with appropriate renderer.

    Args:
        level: facter level (trace..fatal) or stdlib level name.
        json_mode: Use JSON renderer (for machine consumption).
                   False = console renderer.
    """
    log_level = _level_number(level)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_mode:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(log_level)
