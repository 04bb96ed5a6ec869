"""
Structured logging configuration using structlog.

Provides JSON-formatted logging with context processors for
timestamps and log levels, plus a helper for per-request debug records
emitted by the request core.
"""
import logging
import os
import sys
from typing import Any

import structlog


def setup_logging(level: str | None = None) -> None:
    """
    Configure structured logging with structlog.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            Falls back to the LOG_LEVEL environment variable, then INFO.

    Sets up:
        - JSON output format for production
        - Console output with colors for development
        - Context processors for timestamps and metadata
        - Integration with standard library logging
    """
    level = level or os.getenv("LOG_LEVEL", "INFO")
    log_level = getattr(logging, level.upper(), logging.INFO)

    # Configure standard library logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    is_dev = os.getenv("ENVIRONMENT", "production") == "development"

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    if is_dev:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = __name__) -> structlog.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ of calling module)

    Returns:
        Configured structlog logger instance

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("listing_extended", uri="r/python/hot", received=25)
    """
    return structlog.get_logger(name)


def log_request(
    logger: Any,
    method: str,
    url: str,
    status_code: int | None,
    duration_ms: float,
    error: str | None = None,
    **extra: Any,
) -> None:
    """
    Log a single reddit API dispatch in structured format.

    Args:
        logger: Logger to write to (anything with ``debug``)
        method: HTTP verb of the dispatch
        url: Request path relative to the API host
        status_code: HTTP status code, or None if no response arrived
        duration_ms: Round-trip time in milliseconds
        error: Error message if the dispatch failed
        **extra: Additional context to log

    Example:
        >>> log_request(
        ...     logger,
        ...     method="GET",
        ...     url="r/python/hot",
        ...     status_code=200,
        ...     duration_ms=123.4,
        ...     ratelimit_remaining=598,
        ... )
    """
    log_data = {
        "method": method,
        "url": url,
        "status_code": status_code,
        "duration_ms": round(duration_ms, 2),
        "error": error,
        **extra,
    }

    if error:
        logger.debug("request_failed", **log_data)
    else:
        logger.debug("request_completed", **log_data)
