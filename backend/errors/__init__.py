"""
PriceBot Error Handling Module

Provides standardized error codes, exceptions, and response builders
for consistent error handling across the application.

Usage:
    from errors import (
        # Error codes
        ErrorCode,

        # Exceptions
        PricebotError,
        ValidationError,
        ExternalServiceError,
        LLMError,
        ParseError,
        ClientError,
        OverloadedError,
        EnvError,
        SystemPromptError,
        ImageProcessingError,

        # Response builders
        error_response,
        success_response,
        format_error_for_llm,

        # Logging
        log_error,
    )

Example:
    from errors import ClientError, ParseError

    try:
        query = await provider.try_parse(text, context, orchestrator)
    except ParseError as e:
        retry_text = build_retry_prompt(text, e.diagnostic)
    except ClientError as e:
        logger.error(f"Provider failed: {e.detail}")
"""

from .codes import ErrorCode
from .exceptions import (
    PricebotError,
    ValidationError,
    ExternalServiceError,
    LLMError,
    ParseError,
    ClientError,
    OverloadedError,
    EnvError,
    SystemPromptError,
    ImageProcessingError,
)
from .response import (
    error_response,
    success_response,
    format_error_for_llm,
)
from .handlers import log_error

__all__ = [
    # Error codes
    "ErrorCode",
    # Exceptions
    "PricebotError",
    "ValidationError",
    "ExternalServiceError",
    "LLMError",
    "ParseError",
    "ClientError",
    "OverloadedError",
    "EnvError",
    "SystemPromptError",
    "ImageProcessingError",
    # Response builders
    "error_response",
    "success_response",
    "format_error_for_llm",
    # Logging
    "log_error",
]
