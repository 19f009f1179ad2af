"""
Retryable HTTP client for provider calls.

Thin wrapper over a shared httpx.AsyncClient: bounded retries with
exponential backoff for network failures and transient HTTP statuses,
fixed per-request timeout. Any other response is handed back as-is so the
caller can read the provider's error payload.
"""

import asyncio
import logging
from typing import Optional

import httpx

from errors import ExternalServiceError

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


class RetryableClient:
    """Shared async HTTP transport. Safe to use from concurrent tasks."""

    def __init__(
        self,
        timeout: float = 45.0,
        max_retries: int = 3,
        backoff: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.max_retries = max(1, max_retries)
        self.backoff = backoff
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def execute_with_retry(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Send a request, retrying transient failures.

        Returns the final response for non-retryable statuses, or the last
        retryable response once attempts run out.

        Raises:
            ExternalServiceError: every attempt failed before a response arrived
        """
        last_error: Optional[Exception] = None
        response: Optional[httpx.Response] = None

        for attempt in range(self.max_retries):
            if attempt > 0:
                delay = self.backoff * (2 ** (attempt - 1))
                logger.info(f"HTTP retry {attempt}/{self.max_retries - 1} for {url} after {delay:.1f}s")
                await asyncio.sleep(delay)

            try:
                response = await self._client.request(method, url, **kwargs)
            except httpx.TransportError as e:
                # Timeouts are transport errors too
                last_error = e
                response = None
                logger.warning(f"HTTP {method} {url} failed: {type(e).__name__}: {e}")
                continue

            if response.status_code in RETRYABLE_STATUS:
                logger.warning(f"HTTP {method} {url} returned {response.status_code}")
                continue
            return response

        if response is not None:
            return response

        raise ExternalServiceError(
            "HTTP request failed",
            details=f"{type(last_error).__name__}: {last_error}" if last_error else None,
            service="llm",
            url=url,
            attempts=self.max_retries,
        )

    async def aclose(self) -> None:
        await self._client.aclose()
