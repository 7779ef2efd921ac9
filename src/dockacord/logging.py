"""Structured logging configuration for DockaCord.

The notifier usually runs as a container itself, so output is one JSON
object per line unless stderr is a terminal, in which case the console
renderer is used. Every entry carries ``service=dockacord``; event handling
adds ``action``, ``level`` and ``container`` keys, delivery adds ``status``
or ``error``.

The docker SDK, httpx and urllib3 log each request at DEBUG/INFO; with one
POST per notified event that would drown the notifier's own lines, so those
loggers are raised to WARNING unless the CLI runs with ``--log-level DEBUG``.

Usage:
    from dockacord.logging import configure_logging

    configure_logging(level="DEBUG")
"""

import logging
import sys
from typing import cast

import structlog

SERVICE_NAME = "dockacord"

# Third-party loggers that are chatty at INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "urllib3", "docker")


def configure_logging(service_name: str = SERVICE_NAME, level: str = "INFO") -> None:
    """Configure structlog and stdlib logging for the notifier.

    Args:
        service_name: Value bound to the ``service`` key of every entry
        level: Log level name ('DEBUG', 'INFO', 'WARNING', 'ERROR')

    Raises:
        ValueError: If ``level`` is not a known log level name
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        raise ValueError(f"Unknown log level: {level}")

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    structlog.configure(
        processors=shared_processors
        + [
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer: structlog.types.Processor = (
        structlog.dev.ConsoleRenderer()
        if sys.stderr.isatty()
        else structlog.processors.JSONRenderer()
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processor=renderer,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    root_logger = logging.getLogger()
    if root_logger.hasHandlers():
        root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    if log_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    structlog.contextvars.bind_contextvars(service=service_name)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a logger bound to ``name`` (usually ``__name__``)."""
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
