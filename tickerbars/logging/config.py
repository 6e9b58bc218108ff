"""
Centralized logging configuration for tickerbars.

This module provides standardized logging configuration using structlog
for all components. Log output goes to stderr so that command output on
stdout stays machine readable.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import FilteringBoundLogger


def configure_logging(
    level: str = "INFO",
    format_json: bool = False,
    include_timestamp: bool = True,
    include_caller: bool = False,
    extra_processors: Optional[list] = None
) -> None:
    """
    Configure structlog for the entire application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_json: If True, output JSON format; otherwise human-readable
        include_timestamp: Include timestamp in log output
        include_caller: Include caller information (filename, line number)
        extra_processors: Additional structlog processors to include
    """
    log_level = getattr(logging, level.upper())

    logging.basicConfig(
        level=log_level,
        stream=sys.stderr,
        format="%(message)s",
        force=True,
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))

    if include_caller:
        processors.append(structlog.processors.CallsiteParameterAdder(
            parameters=[structlog.processors.CallsiteParameter.FILENAME,
                        structlog.processors.CallsiteParameter.LINENO]
        ))

    if extra_processors:
        processors.extend(extra_processors)

    if format_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> FilteringBoundLogger:
    """
    Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)


def get_sync_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger for the request scheduler and its collaborators.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger bound with the sync subsystem context
    """
    # Initial values keep the proxy lazy so later configure_logging calls apply
    return structlog.get_logger(name, subsystem="sync")


def log_request_transition(
    logger: FilteringBoundLogger,
    request_id: int,
    ticker: str,
    from_state: str,
    to_state: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log a request lifecycle transition with standardized format.

    Args:
        logger: Structlog logger instance
        request_id: Id of the historical data request
        ticker: Ticker the request was made for
        from_state: Previous request state
        to_state: New request state
        context: Additional context data
    """
    bound_logger = logger.bind(
        request_id=request_id,
        ticker=ticker,
        from_state=from_state,
        to_state=to_state,
    )

    if context:
        bound_logger = bound_logger.bind(**context)

    bound_logger.debug("Request transition")
