"""
Tests for the PriceBot error handling module.
"""

import logging
from errors import (
    ErrorCode,
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
    error_response,
    success_response,
    format_error_for_llm,
    log_error,
)


class TestErrorCodes:
    """Test error code enum."""

    def test_error_codes_are_strings(self):
        """Error codes should be string values."""
        assert ErrorCode.LLM_PARSE_FAILED.value == "LLM_PARSE_FAILED"
        assert ErrorCode.EXTERNAL_DATABASE_FAILED.value == "EXTERNAL_DATABASE_FAILED"

    def test_error_codes_have_categories(self):
        """Error codes should follow category naming convention."""
        llm_codes = [c for c in ErrorCode if c.value.startswith("LLM_")]
        assert len(llm_codes) >= 4

        external_codes = [c for c in ErrorCode if c.value.startswith("EXTERNAL_")]
        assert len(external_codes) >= 3


class TestPricebotError:
    """Test base PricebotError exception."""

    def test_basic_creation(self):
        """Create basic error with message."""
        err = PricebotError("Test error")
        assert err.message == "Test error"
        assert err.details is None
        assert err.code == ErrorCode.INTERNAL_UNEXPECTED
        assert err.recoverable is False

    def test_with_context(self):
        """Create error with additional context."""
        err = PricebotError("Test error", foo="bar", count=42)
        assert err.context == {"foo": "bar", "count": 42}

    def test_str_representation(self):
        """String representation includes message and details."""
        err = PricebotError("Test error", details="More info")
        assert str(err) == "Test error - More info"

        err_no_details = PricebotError("Test error")
        assert str(err_no_details) == "Test error"

    def test_to_dict(self):
        """Convert error to dictionary."""
        err = PricebotError("Test error", details="More info", key="value")
        d = err.to_dict()
        assert d["code"] == ErrorCode.INTERNAL_UNEXPECTED.value
        assert d["message"] == "Test error"
        assert d["details"] == "More info"
        assert d["recoverable"] is False
        assert d["context"] == {"key": "value"}


class TestLLMErrors:
    """Test the LLMError family used for provider control flow."""

    def test_all_are_llm_errors(self):
        """Every provider failure kind is an LLMError."""
        for err in (
            ParseError("x"),
            ClientError("x"),
            OverloadedError(),
            EnvError("GROQ_API_KEY"),
            ImageProcessingError("unsupported format"),
        ):
            assert isinstance(err, LLMError)
            assert err.final is False

    def test_parse_error_diagnostic(self):
        """ParseError carries the diagnostic fed back to the model."""
        err = ParseError('{"code": "tool_use_failed"}', model="kimi")
        assert err.message == "Cannot parse and deserialize llm response"
        assert err.diagnostic == '{"code": "tool_use_failed"}'
        assert err.code == ErrorCode.LLM_PARSE_FAILED
        assert err.recoverable is True
        assert err.context["model"] == "kimi"

    def test_parse_error_without_diagnostic(self):
        """Empty diagnostic reads back as an empty string."""
        assert ParseError().diagnostic == ""

    def test_client_error_detail(self):
        """ClientError keeps the provider's message as detail."""
        err = ClientError("invalid_request_error: bad", status_code=400)
        assert err.detail == "invalid_request_error: bad"
        assert str(err) == "LLM client error - invalid_request_error: bad"
        assert err.code == ErrorCode.LLM_CLIENT_FAILED

    def test_overloaded(self):
        """OverloadedError has a fixed message."""
        err = OverloadedError(model="claude-sonnet-4-20250514")
        assert str(err) == "API overloaded"
        assert err.code == ErrorCode.LLM_OVERLOADED

    def test_env_error_names_variable(self):
        """EnvError names the missing variable."""
        err = EnvError("ANTHROPIC_API_KEY")
        assert err.details == "ANTHROPIC_API_KEY"
        assert err.context["variable"] == "ANTHROPIC_API_KEY"
        assert err.code == ErrorCode.CONFIG_MISSING_CREDENTIAL

    def test_system_prompt_error(self):
        """SystemPromptError has its own code."""
        assert SystemPromptError("missing").code == ErrorCode.CONFIG_SYSTEM_PROMPT


class TestValidationError:
    """Test ValidationError exception."""

    def test_default_code(self):
        """Default code is VALIDATION_INVALID_VALUE."""
        err = ValidationError("Invalid value")
        assert err.code == ErrorCode.VALIDATION_INVALID_VALUE
        assert err.recoverable is True

    def test_with_parameter_info(self):
        """Include parameter context."""
        err = ValidationError("Invalid value", parameter="primary_llm", expected="claude or groq", received="gpt")
        assert err.context["parameter"] == "primary_llm"
        assert err.context["expected"] == "claude or groq"
        assert err.context["received"] == "gpt"


class TestExternalServiceError:
    """Test ExternalServiceError exception."""

    def test_default_code(self):
        """Default code is EXTERNAL_NETWORK_ERROR."""
        err = ExternalServiceError("Network error")
        assert err.code == ErrorCode.EXTERNAL_NETWORK_ERROR
        assert err.recoverable is True

    def test_llm_service(self):
        """LLM service sets appropriate code."""
        err = ExternalServiceError("Failed", service="llm")
        assert err.code == ErrorCode.EXTERNAL_LLM_FAILED

    def test_database_service(self):
        """Database service sets appropriate code."""
        err = ExternalServiceError("Failed", service="database")
        assert err.code == ErrorCode.EXTERNAL_DATABASE_FAILED

    def test_with_status_code(self):
        """Include status code in context."""
        err = ExternalServiceError("Failed", service="llm", status_code=503)
        assert err.context["service"] == "llm"
        assert err.context["status_code"] == 503


class TestErrorResponse:
    """Test error_response function."""

    def test_pricebot_error_response(self):
        """Convert PricebotError to response dict."""
        err = ClientError("connection reset", model="kimi")
        resp = error_response(err, tool="list_available_pricelists")

        assert resp["success"] is False
        assert resp["error"]["code"] == "LLM_CLIENT_FAILED"
        assert resp["error"]["message"] == "LLM client error"
        assert resp["error"]["details"] == "connection reset"
        assert resp["error"]["tool"] == "list_available_pricelists"
        assert resp["error"]["recoverable"] is False
        assert resp["error"]["context"] == {"model": "kimi"}

    def test_generic_exception_response(self):
        """Convert generic Exception to response dict."""
        err = ValueError("Bad value")
        resp = error_response(err, tool="test")

        assert resp["success"] is False
        assert resp["error"]["code"] == "INTERNAL_UNEXPECTED"
        assert resp["error"]["message"] == "Bad value"
        assert resp["error"]["recoverable"] is False

    def test_without_context(self):
        """Exclude context when requested."""
        err = OverloadedError(model="kimi")
        resp = error_response(err, include_context=False)

        assert resp["error"]["context"] is None


class TestSuccessResponse:
    """Test success_response function."""

    def test_basic_success(self):
        """Create basic success response."""
        resp = success_response()
        assert resp == {"success": True}

    def test_with_kwargs(self):
        """Include additional kwargs."""
        resp = success_response(model="groq", conversation_id=None)
        assert resp["success"] is True
        assert resp["model"] == "groq"
        assert resp["conversation_id"] is None

    def test_with_data_dict(self):
        """Include data dictionary."""
        resp = success_response({"items": [1, 2], "count": 2})
        assert resp["success"] is True
        assert resp["items"] == [1, 2]
        assert resp["count"] == 2


class TestFormatErrorForLLM:
    """Test format_error_for_llm function."""

    def test_pricebot_error(self):
        """Format PricebotError for LLM."""
        err = ExternalServiceError("Catalog unavailable", details="file missing")
        formatted = format_error_for_llm(err)

        assert "Error: Catalog unavailable" in formatted
        assert "Details: file missing" in formatted

    def test_plain_text_with_tool(self):
        """Plain error text is prefixed with the tool name."""
        formatted = format_error_for_llm("Price list catalog unavailable", tool="list_available_pricelists")
        assert formatted == "Error in list_available_pricelists: Price list catalog unavailable"

    def test_generic_exception(self):
        """Format generic Exception for LLM."""
        err = ValueError("Bad value")
        formatted = format_error_for_llm(err)

        assert "Error: Bad value" in formatted


class TestLogError:
    """Test log_error helper."""

    def test_logs_code_and_context(self, caplog):
        """PricebotError is logged with its code and a context prefix."""
        logger = logging.getLogger("test.errors")
        with caplog.at_level(logging.ERROR):
            log_error(logger, ExternalServiceError("Query failed", service="database"), context="Conversation lookup")

        assert "[Conversation lookup]" in caplog.text
        assert "EXTERNAL_DATABASE_FAILED" in caplog.text
        assert "Query failed" in caplog.text

    def test_logs_foreign_exception(self, caplog):
        """Other exceptions are logged by message."""
        logger = logging.getLogger("test.errors")
        with caplog.at_level(logging.ERROR):
            log_error(logger, RuntimeError("boom"), include_traceback=False)

        assert "boom" in caplog.text
