"""
Logging utilities for consistent logging with correlation IDs.

The correlation ID of a bridged message is its HL7 control ID (MSH-10), so
every record written while handling one message can be grouped together.
"""

import logging
from typing import Optional

logger = logging.getLogger("hl7bridge")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once at process start."""
    logging.basicConfig(level=level, format=LOG_FORMAT)


def format_with_correlation(message: str, correlation_id: Optional[str] = None, **kwargs) -> str:
    """
    Prefix a message with its correlation ID and append keyword context.

    Args:
        message: Log message
        correlation_id: Correlation ID (control ID of the HL7 message)
        **kwargs: Additional context to include in log message
    """
    formatted_message = f"[{correlation_id}] {message}" if correlation_id else message
    if kwargs:
        context_str = ", ".join(f"{k}={v}" for k, v in kwargs.items())
        formatted_message = f"{formatted_message} ({context_str})"
    return formatted_message


def log_with_correlation(
    level: str,
    message: str,
    correlation_id: Optional[str] = None,
    target: Optional[logging.Logger] = None,
    **kwargs
) -> None:
    """
    Log a message with correlation ID.

    Args:
        level: Log level ('info', 'warning', 'error', 'debug')
        message: Log message
        correlation_id: Correlation ID
        target: Logger to write to (defaults to the package logger)
        **kwargs: Additional context to include in log message
    """
    log_func = getattr(target or logger, level.lower(), (target or logger).info)
    log_func(format_with_correlation(message, correlation_id, **kwargs))


def log_error(message: str, correlation_id: Optional[str] = None, exc_info: bool = False, **kwargs) -> None:
    """Log error message with correlation ID."""
    logger.error(format_with_correlation(message, correlation_id, **kwargs), exc_info=exc_info)
