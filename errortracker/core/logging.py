"""Structured logging setup using structlog."""

from __future__ import annotations

import logging
import sys

import structlog

from errortracker.core.config import Settings, get_settings

# Third-party loggers that are chatty at INFO.
_LIBRARY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "aiohttp.access")


def setup_logging(
    level: str | None = None,
    fmt: str | None = None,
    settings: Settings | None = None,
) -> None:
    """Route structlog and stdlib logging through one stderr handler.

    Args:
        level: Log level override (e.g. "DEBUG"). Uses config if None.
        fmt: Renderer override ("json" or "console"). Uses config if None.
        settings: Loaded settings; falls back to ``get_settings()``.

    JSON output carries exceptions as structured ``exception`` fields so the
    scanner's per-tick failures stay machine-readable; console output keeps
    structlog's pretty tracebacks.
    """
    settings = settings or get_settings()
    log_level = getattr(logging, (level or settings.logging.level).upper(), logging.INFO)
    json_output = (fmt or settings.logging.format) == "json"

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    renderer: structlog.types.Processor
    if json_output:
        shared_processors.append(structlog.processors.dict_tracebacks)
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    _configure_library_loggers(log_level, sql_echo=settings.database.echo)


def _configure_library_loggers(log_level: int, sql_echo: bool) -> None:
    for name in _LIBRARY_LOGGERS:
        library_level = logging.WARNING if log_level > logging.DEBUG else log_level
        if name == "sqlalchemy.engine" and sql_echo:
            library_level = logging.INFO
        logging.getLogger(name).setLevel(library_level)
