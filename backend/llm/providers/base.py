"""
LLM Provider - abstract base class for the query-understanding backends.

A provider turns free text into a Query: it sends the text with the shared
tool catalog, classifies the provider's answer, logs the call's cost and
hands the normalized content blocks to the orchestrator for resolution.

Normalized response shape shared by all providers:

    {"content": [{"type": "tool_use", "name": ..., "input": {...}}
                 | {"type": "text", "text": ...}]}
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Optional

import httpx

from errors import ClientError, ExternalServiceError, ParseError
from llm.context import ProviderName, SessionContext, UsageCounters
from llm.cost_hooks import CostLogHook
from logging_config import log_llm
from services.http_client import RetryableClient

if TYPE_CHECKING:
    from llm.orchestrator import LLMOrchestrator
    from llm.query import Query
    from services.persistence import PersistenceService

logger = logging.getLogger(__name__)

# First attempt plus one schema-correction retry
PARSE_ATTEMPTS = 2

RETRY_INSTRUCTION = (
    "Your previous response was not as per input schema. "
    "Return ONLY valid tool call with input matching the exact input schema."
)


def build_retry_prompt(query: str, diagnostic: str) -> str:
    """Re-ask after a schema failure, quoting what went wrong."""
    return f"Original query: {query}\nYour response:{diagnostic}\n{RETRY_INSTRUCTION}"


class LLMProvider(ABC):
    """Abstract provider with the shared request / retry flow."""

    name: ProviderName

    # RuntimeConfig attributes read on every request when a config is attached
    model_setting: str
    max_tokens_setting: str

    def __init__(
        self,
        system_prompt: str,
        api_key: str,
        client: RetryableClient,
        model: str,
        max_tokens: int,
        persistence: Optional["PersistenceService"] = None,
        cost_hook: Optional[CostLogHook] = None,
        config=None,
    ):
        self.system_prompt = system_prompt
        self._api_key = api_key
        self.client = client
        self._model = model
        self._max_tokens = max_tokens
        self.config = config
        self.persistence = persistence
        self.cost_hook = cost_hook or CostLogHook()

    def setting(self, attribute: str, fallback):
        """Live value from the attached RuntimeConfig, else the constructor value."""
        if self.config is None:
            return fallback
        return getattr(self.config, attribute)

    @property
    def model(self) -> str:
        return self.setting(self.model_setting, self._model)

    @property
    def max_tokens(self) -> int:
        return self.setting(self.max_tokens_setting, self._max_tokens)

    async def try_parse(
        self,
        query: str,
        context: SessionContext,
        orchestrator: "LLMOrchestrator",
        multistep: bool = True,
    ) -> "Query":
        """Resolve free text into a Query.

        A ParseError on the first attempt is retried once with a corrective
        prompt; a second ParseError propagates unchanged. Other errors
        propagate immediately.
        """
        last_error: Optional[ParseError] = None

        for attempt in range(PARSE_ATTEMPTS):
            text = query if last_error is None else build_retry_prompt(query, last_error.diagnostic)
            try:
                response = await self.make_api_request(text, context)
                return await orchestrator.resolve_response(response, query, context, multistep=multistep)
            except ParseError as e:
                if e.final:
                    raise
                last_error = e
                if attempt + 1 < PARSE_ATTEMPTS:
                    logger.warning(f"{self.name.value} response did not match the tool schema, retrying")

        raise last_error

    async def make_api_request(self, text: str, context: SessionContext) -> Dict[str, Any]:
        """Send one request and return the normalized content blocks.

        Raises:
            ParseError: provider rejected the tool call against its schema
            OverloadedError: provider reported a capacity problem
            ClientError: transport failure, unreadable body, any other error payload
        """
        url, headers, body = self.build_request(text)
        model = body["model"]

        start = time.time()
        log_llm(logger, "start", model=model)
        try:
            response = await self.client.execute_with_retry("POST", url, headers=headers, json=body)
        except ExternalServiceError as e:
            raise ClientError(str(e), model=model) from e

        try:
            payload = response.json()
        except ValueError as e:
            raise ClientError(f"Unreadable response (HTTP {response.status_code}): {e}", model=model) from e
        log_llm(logger, "end", model=model, duration=time.time() - start)

        if not isinstance(payload, dict):
            raise ClientError(f"Unexpected response body: {payload!r}"[:500], model=model)

        error = payload.get("error")
        if error is not None:
            raise self.classify_error(error, response)
        if response.is_error:
            raise ClientError(f"HTTP {response.status_code}", model=model)

        self.record_usage(context, self.extract_usage(payload), model)
        return self.normalize(payload)

    def record_usage(
        self, context: SessionContext, usage: UsageCounters, model: str, event_type: Optional[str] = None
    ) -> None:
        """Schedule the cost write for the model that served the call; never waits for it."""
        if self.persistence is None:
            return
        self.cost_hook.submit(self.cost_write(context, usage, model, event_type), label=f"{self.name.value} cost log")

    @abstractmethod
    def build_request(self, text: str) -> tuple:
        """Return (url, headers, json body) for a tool-forcing request."""
        ...

    @abstractmethod
    def classify_error(self, error: Any, response: httpx.Response) -> Exception:
        """Map a provider error object onto the LLMError taxonomy."""
        ...

    @abstractmethod
    def extract_usage(self, payload: Dict[str, Any]) -> UsageCounters:
        ...

    @abstractmethod
    def normalize(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Convert a success payload to the shared content-block shape."""
        ...

    @abstractmethod
    async def cost_write(
        self, context: SessionContext, usage: UsageCounters, model: str, event_type: Optional[str]
    ) -> None:
        ...


def token_count(container: Any, *path: str) -> int:
    """Read a nested integer counter, 0 when absent."""
    value = container
    for key in path:
        if not isinstance(value, dict):
            return 0
        value = value.get(key)
    return value if isinstance(value, int) and not isinstance(value, bool) else 0
