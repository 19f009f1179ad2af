"""
Standard error response builders for PriceBot.

Provides consistent response formats for the HTTP surface and for tool
results fed back to the model.
"""

from typing import Any, Optional
from .codes import ErrorCode
from .exceptions import PricebotError


def error_response(error: PricebotError | Exception, tool: Optional[str] = None, include_context: bool = True) -> dict:
    """Build a standard error response dictionary.

    Args:
        error: The exception to convert to a response
        tool: Optional tool name for context
        include_context: Whether to include the context dict (disable for privacy)

    Returns:
        Standard error response dict with success=False

    Example:
        >>> from errors import OverloadedError, error_response
        >>> error_response(OverloadedError(model="claude"))
        {
            "success": False,
            "error": {
                "code": "LLM_OVERLOADED",
                "message": "API overloaded",
                "details": None,
                "tool": None,
                "recoverable": False,
                "context": {"model": "claude"}
            }
        }
    """
    if isinstance(error, PricebotError):
        return {
            "success": False,
            "error": {
                "code": error.code.value,
                "message": error.message,
                "details": error.details,
                "tool": tool,
                "recoverable": error.recoverable,
                "context": error.context if include_context else None,
            },
        }

    # Fallback for foreign exceptions
    return {
        "success": False,
        "error": {
            "code": ErrorCode.INTERNAL_UNEXPECTED.value,
            "message": str(error),
            "details": None,
            "tool": tool,
            "recoverable": False,
            "context": None,
        },
    }


def success_response(data: Optional[dict] = None, **kwargs: Any) -> dict:
    """Build a standard success response dictionary.

    Example:
        >>> success_response(model="groq")
        {"success": True, "model": "groq"}
    """
    response = {"success": True}

    if data:
        response.update(data)
    if kwargs:
        response.update(kwargs)

    return response


def format_error_for_llm(error: PricebotError | Exception | str, tool: Optional[str] = None) -> str:
    """Format an error for inclusion in a follow-up prompt.

    Args:
        error: The exception (or plain error text) to format
        tool: Optional tool name for context

    Returns:
        Formatted error string
    """
    prefix = f"Error in {tool}" if tool else "Error"
    if isinstance(error, PricebotError):
        parts = [f"{prefix}: {error.message}"]
        if error.details:
            parts.append(f"Details: {error.details}")
        return " ".join(parts)

    return f"{prefix}: {str(error)}"
