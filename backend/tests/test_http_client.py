"""
Tests for the retryable HTTP client.
"""

import asyncio

import httpx
import pytest

from errors import ErrorCode, ExternalServiceError


URL = "https://api.example.com/v1/messages"


class TestRetryableClient:
    """Retry policy over httpx.MockTransport."""

    def test_success_first_try(self, recording_transport):
        transport = recording_transport([httpx.Response(200, json={"ok": True})])
        response = asyncio.run(transport.client(max_retries=3).execute_with_retry("POST", URL, json={}))
        assert response.status_code == 200
        assert len(transport.requests) == 1

    def test_retries_transient_status(self, recording_transport):
        """429 and 5xx are retried until a good response arrives."""
        transport = recording_transport(
            [httpx.Response(429), httpx.Response(502), httpx.Response(200, json={"ok": True})]
        )
        response = asyncio.run(transport.client(max_retries=3).execute_with_retry("POST", URL, json={}))
        assert response.status_code == 200
        assert len(transport.requests) == 3

    def test_returns_last_retryable_response(self, recording_transport):
        """Exhausted retries hand back the last response for classification."""
        transport = recording_transport([httpx.Response(503), httpx.Response(503)])
        response = asyncio.run(transport.client(max_retries=2).execute_with_retry("GET", URL))
        assert response.status_code == 503
        assert len(transport.requests) == 2

    def test_client_errors_not_retried(self, recording_transport):
        """A 400 carries the provider's error payload and is returned at once."""
        transport = recording_transport([httpx.Response(400, json={"error": {"type": "invalid_request_error"}})])
        response = asyncio.run(transport.client(max_retries=3).execute_with_retry("POST", URL, json={}))
        assert response.status_code == 400
        assert len(transport.requests) == 1

    def test_network_errors_retried(self, recording_transport):
        transport = recording_transport([httpx.ReadTimeout("timed out"), httpx.Response(200, json={})])
        response = asyncio.run(transport.client(max_retries=2).execute_with_retry("POST", URL, json={}))
        assert response.status_code == 200

    def test_network_failure_exhausted(self, recording_transport):
        """No response at all raises an LLM service error."""
        transport = recording_transport([httpx.ConnectError("refused"), httpx.ConnectError("refused")])
        with pytest.raises(ExternalServiceError) as exc:
            asyncio.run(transport.client(max_retries=2).execute_with_retry("POST", URL, json={}))
        assert exc.value.code == ErrorCode.EXTERNAL_LLM_FAILED
        assert "ConnectError" in exc.value.details

    def test_network_failure_after_response(self, recording_transport):
        """A network failure on the last attempt raises even after an earlier 5xx."""
        transport = recording_transport([httpx.Response(500), httpx.ConnectError("refused")])
        with pytest.raises(ExternalServiceError):
            asyncio.run(transport.client(max_retries=2).execute_with_retry("POST", URL, json={}))
