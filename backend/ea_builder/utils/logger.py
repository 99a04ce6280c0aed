"""
PURPOSE: Structured logging configuration and logger factory for EA Builder.
Uses structlog for JSON-formatted logs with automatic context binding.
"""

import logging
from typing import Optional, TextIO

import structlog


def setup_logging(log_level: str = "INFO", stream: Optional[TextIO] = None) -> None:
    """
    PURPOSE: Configure structlog with JSON output format, including timestamp, level, module, and event.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL). Defaults to "INFO".
        stream: Where log lines are written. Defaults to stdout; the CLI passes
            stderr so generated code on stdout is not interleaved with logs.
    """
    level = logging.getLevelName(str(log_level).upper())
    if not isinstance(level, int):
        level = logging.INFO

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=False,
    )


def get_logger(module_name: str) -> structlog.BoundLogger:
    """
    PURPOSE: Return a logger with module context for structured logging.

    The logger is resolved lazily on first use, so module-level loggers pick
    up whatever configuration setup_logging() installed at runtime.

    Args:
        module_name: The name of the module requesting the logger (e.g., "__name__").

    Returns:
        structlog.BoundLogger: Logger instance with module context bound.
    """
    return structlog.get_logger(module=module_name)
