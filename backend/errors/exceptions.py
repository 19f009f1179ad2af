"""
Custom exception hierarchy for PriceBot.

All exceptions inherit from PricebotError and include:
- code: ErrorCode for categorization
- message: Human-readable error message
- details: Optional additional context
- recoverable: Whether a retry could succeed
- context: Additional key-value pairs for debugging

The LLMError branch is the control-flow vocabulary of query understanding:
ParseError is corrected locally by the provider that produced it, while
ClientError and OverloadedError hand the query over to the other provider.
"""

from typing import Any, Optional
from .codes import ErrorCode


class PricebotError(Exception):
    """Base exception for all PriceBot errors.

    Attributes:
        code: The ErrorCode categorizing this error
        message: Human-readable error message
        details: Optional additional context
        recoverable: Whether the error can be resolved by retrying
        context: Additional debugging information
    """

    code: ErrorCode = ErrorCode.INTERNAL_UNEXPECTED
    recoverable: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        code: Optional[ErrorCode] = None,
        recoverable: Optional[bool] = None,
        **context: Any,
    ):
        self.message = message
        self.details = details
        self.context = context if context else None

        # Allow overriding class defaults
        if code is not None:
            self.code = code
        if recoverable is not None:
            self.recoverable = recoverable

        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message

    def to_dict(self) -> dict:
        """Convert exception to dictionary for JSON serialization."""
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
            "context": self.context,
        }


class ValidationError(PricebotError):
    """Error during input or configuration validation."""

    code = ErrorCode.VALIDATION_INVALID_VALUE
    recoverable = True

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        parameter: Optional[str] = None,
        expected: Optional[str] = None,
        received: Optional[str] = None,
        **context: Any,
    ):
        ctx = {**context}
        if parameter:
            ctx["parameter"] = parameter
        if expected:
            ctx["expected"] = expected
        if received:
            ctx["received"] = received
        super().__init__(message, details, **ctx)


class ExternalServiceError(PricebotError):
    """Error with external services (LLM HTTP endpoints, PostgreSQL)."""

    code = ErrorCode.EXTERNAL_NETWORK_ERROR
    recoverable = True

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        service: Optional[str] = None,
        status_code: Optional[int] = None,
        **context: Any,
    ):
        # Set appropriate code based on service
        if service == "llm":
            code = ErrorCode.EXTERNAL_LLM_FAILED
        elif service == "database":
            code = ErrorCode.EXTERNAL_DATABASE_FAILED
        else:
            code = ErrorCode.EXTERNAL_NETWORK_ERROR

        ctx = {**context}
        if service:
            ctx["service"] = service
        if status_code:
            ctx["status_code"] = status_code
        super().__init__(message, details, code=code, **ctx)


class LLMError(PricebotError):
    """Error during LLM interactions.

    ``final`` marks an error that must reach the caller untouched: no
    schema-correction retry and no cross-provider fallback.
    """

    code = ErrorCode.LLM_UNAVAILABLE
    recoverable = False

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        model: Optional[str] = None,
        **context: Any,
    ):
        ctx = {**context}
        if model:
            ctx["model"] = model
        self.final = False
        super().__init__(message, details, **ctx)


class ParseError(LLMError):
    """Model output did not match the tool input schema."""

    code = ErrorCode.LLM_PARSE_FAILED
    recoverable = True

    def __init__(self, diagnostic: str = "", **context: Any):
        super().__init__("Cannot parse and deserialize llm response", diagnostic or None, **context)

    @property
    def diagnostic(self) -> str:
        """Raw diagnostic text fed back to the model on retry."""
        return self.details or ""


class ClientError(LLMError):
    """Transport, deserialization or unclassified provider failure."""

    code = ErrorCode.LLM_CLIENT_FAILED

    def __init__(self, detail: str, **context: Any):
        super().__init__("LLM client error", detail, **context)

    @property
    def detail(self) -> str:
        return self.details or ""


class OverloadedError(LLMError):
    """Provider reported a capacity problem."""

    code = ErrorCode.LLM_OVERLOADED

    def __init__(self, **context: Any):
        super().__init__("API overloaded", **context)


class EnvError(LLMError):
    """Provider credential missing from the environment."""

    code = ErrorCode.CONFIG_MISSING_CREDENTIAL

    def __init__(self, variable: str, **context: Any):
        super().__init__("Cannot find api key in env", variable, variable=variable, **context)


class SystemPromptError(LLMError):
    """System prompt could not be loaded."""

    code = ErrorCode.CONFIG_SYSTEM_PROMPT

    def __init__(self, detail: str, **context: Any):
        super().__init__("System prompt construction error", detail, **context)


class ImageProcessingError(LLMError):
    """Image input could not be turned into query text."""

    code = ErrorCode.LLM_IMAGE_FAILED

    def __init__(self, detail: str, **context: Any):
        super().__init__("Image processing error", detail, **context)
