"""
Error codes for PriceBot.

Provides a standardized taxonomy of error codes organized by category.
Use these codes consistently across all error responses.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Standardized error codes for PriceBot.

    Categories:
    - VALIDATION_*: Input / configuration validation errors
    - LLM_*: Language model errors (drive retry and fallback decisions)
    - EXTERNAL_*: External service errors (HTTP transport, database)
    - CONFIG_*: Startup configuration errors
    - INTERNAL_*: Internal/unexpected errors
    """

    # Validation errors (input checking)
    VALIDATION_MISSING_PARAM = "VALIDATION_MISSING_PARAM"
    VALIDATION_INVALID_VALUE = "VALIDATION_INVALID_VALUE"

    # LLM errors (model interactions)
    LLM_UNAVAILABLE = "LLM_UNAVAILABLE"
    LLM_PARSE_FAILED = "LLM_PARSE_FAILED"
    LLM_CLIENT_FAILED = "LLM_CLIENT_FAILED"
    LLM_OVERLOADED = "LLM_OVERLOADED"
    LLM_IMAGE_FAILED = "LLM_IMAGE_FAILED"

    # External service errors
    EXTERNAL_LLM_FAILED = "EXTERNAL_LLM_FAILED"
    EXTERNAL_DATABASE_FAILED = "EXTERNAL_DATABASE_FAILED"
    EXTERNAL_NETWORK_ERROR = "EXTERNAL_NETWORK_ERROR"

    # Startup configuration errors
    CONFIG_MISSING_CREDENTIAL = "CONFIG_MISSING_CREDENTIAL"
    CONFIG_SYSTEM_PROMPT = "CONFIG_SYSTEM_PROMPT"

    # Internal errors (unexpected failures)
    INTERNAL_UNEXPECTED = "INTERNAL_UNEXPECTED"
