"""
Error logging utilities for PriceBot.
"""

import logging
from typing import Optional

from .exceptions import PricebotError


def log_error(
    logger: logging.Logger, error: Exception, context: Optional[str] = None, include_traceback: bool = True
) -> None:
    """Log an error with consistent formatting.

    Used wherever a side effect (cost logging, conversation persistence) fails
    and the failure must not reach the caller.

    Args:
        logger: Logger instance to use
        error: The exception to log
        context: Optional context string to prefix the message
        include_traceback: Whether to include the full stack trace

    Example:
        >>> log_error(logger, err, context="Conversation lookup")
        # Logs: "[Conversation lookup] EXTERNAL_DATABASE_FAILED: Query failed"
    """
    if isinstance(error, PricebotError):
        message = f"{error.code.value}: {error.message}"
        if error.details:
            message = f"{message} ({error.details})"
    else:
        message = str(error) or type(error).__name__

    if context:
        message = f"[{context}] {message}"

    logger.error(message, exc_info=include_traceback)
