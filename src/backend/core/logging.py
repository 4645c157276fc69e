"""
Structured logging setup.

Configures structlog once at startup. Development gets the console renderer,
production (LOG_JSON=true) gets one JSON object per line.
"""

import logging

import structlog

from core.config import settings


def setup_logging(log_level: str | None = None, json_logs: bool | None = None) -> None:
    """Configure stdlib logging and structlog processors."""
    level_name = (log_level or settings.LOG_LEVEL).upper()
    level = getattr(logging, level_name, logging.INFO)
    use_json = settings.LOG_JSON if json_logs is None else json_logs

    logging.basicConfig(level=level, format="%(message)s")

    renderer = structlog.processors.JSONRenderer() if use_json else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
