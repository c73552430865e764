"""Logging setup and configuration."""

import logging
import sys
from collections.abc import Iterable
from typing import TextIO

from .context import ContextFilter
from .filters import DefaultCorrelationFilter, PIIFilter
from .formatters import DevFormatter, JSONFormatter

# HTTP client loggers echo every request URL, including the directions API key
DEFAULT_QUIET_LOGGERS = ("httpx", "httpcore")


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    environment: str = "development",
    quiet_loggers: Iterable[str] = DEFAULT_QUIET_LOGGERS,
    stream: TextIO | None = None,
) -> logging.Handler:
    """Install a single handler on the root logger and return it.

    Loggers named in ``quiet_loggers`` are capped at WARNING.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JSONFormatter(environment) if json_output else DevFormatter())

    # Context first so a bound correlation_id wins over the default
    handler.addFilter(ContextFilter())
    handler.addFilter(DefaultCorrelationFilter())
    handler.addFilter(PIIFilter())

    root_logger.addHandler(handler)
    root_logger.setLevel(numeric_level)

    for name in quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)

    return handler
