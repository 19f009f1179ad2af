"""
Claude Provider - Anthropic Messages API over the retryable HTTP client.
"""

import json
import logging
from typing import Any, Dict, Optional

import httpx

from errors import ClientError, OverloadedError, ParseError
from llm.context import ProviderName, SessionContext, UsageCounters
from llm.providers.base import LLMProvider, token_count
from tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

API_URL = "https://api.anthropic.com/v1/messages"
API_VERSION = "2023-06-01"

# Substrings of an invalid_request_error message that point at the tool call
SCHEMA_ERROR_MARKERS = ("input_schema", "tool", "JSON schema")


class ClaudeProvider(LLMProvider):
    """Primary provider by default."""

    name = ProviderName.CLAUDE
    model_setting = "claude_model"
    max_tokens_setting = "claude_max_tokens"

    def build_request(self, text: str) -> tuple:
        headers = {
            "x-api-key": self._api_key,
            "anthropic-version": API_VERSION,
            "content-type": "application/json",
        }
        body = {
            "model": self.model,
            "temperature": 0.0,
            "max_tokens": self.max_tokens,
            "system": [
                {
                    "type": "text",
                    "text": self.system_prompt,
                    "cache_control": {"type": "ephemeral", "ttl": "1h"},
                }
            ],
            "tool_choice": {"type": "any"},
            "tools": ToolRegistry.get_tool_definitions(),
            "messages": [{"role": "user", "content": text}],
        }
        return API_URL, headers, body

    def classify_error(self, error: Any, response: httpx.Response) -> Exception:
        error = error if isinstance(error, dict) else {}
        error_type = error.get("type") or "unknown"
        message = error.get("message") or "unknown"

        if error_type == "overloaded_error":
            return OverloadedError(model=self.model)
        if error_type == "invalid_request_error" and any(m in message for m in SCHEMA_ERROR_MARKERS):
            logger.error("Claude tool validation failed, retrying with schema reminder")
            return ParseError(json.dumps({"type": "error", "error": error}), model=self.model)
        return ClientError(f"{error_type}: {message}", model=self.model, status_code=response.status_code)

    def extract_usage(self, payload: Dict[str, Any]) -> UsageCounters:
        usage = payload.get("usage")
        return UsageCounters(
            input_tokens=token_count(usage, "input_tokens"),
            output_tokens=token_count(usage, "output_tokens"),
            cache_read_tokens=token_count(usage, "cache_read_input_tokens"),
            cache_write_tokens=token_count(usage, "cache_creation", "ephemeral_1h_input_tokens"),
        )

    def normalize(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        # Messages API already returns content blocks
        return {"content": payload.get("content")}

    async def cost_write(
        self, context: SessionContext, usage: UsageCounters, model: str, event_type: Optional[str]
    ) -> None:
        await self.persistence.log_claude_api_call(context, usage, model)
