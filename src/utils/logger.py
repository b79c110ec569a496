"""Structured logging configuration for anime-match-agent."""

from __future__ import annotations

import logging

import structlog

LOG_LEVEL_MAP: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def configure_logging(*, json_output: bool = False, log_level: str = "info") -> None:
    """Configure structlog for the matcher service.

    Background job executions bind platform/year through contextvars, so the
    merge processor must stay first.

    Args:
        json_output: If True, output JSON lines. If False, pretty console output.
        log_level: Minimum log level (debug, info, warning, error).
    """
    level = LOG_LEVEL_MAP.get(log_level.lower(), logging.INFO)

    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    if json_output:
        processors.append(structlog.processors.dict_tracebacks)
        processors.append(structlog.processors.JSONRenderer(ensure_ascii=False))
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # httpx logs every model and catalog request at INFO
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
