"""
Groq Provider - OpenAI-compatible chat completions over the retryable HTTP client.

Also serves plain, tool-less completions for the conversation classifier.
"""

import json
import logging
import time
from typing import Any, Dict, Optional

import httpx

from errors import ClientError, ExternalServiceError, OverloadedError, ParseError
from llm.context import ProviderName, SessionContext, UsageCounters
from llm.providers.base import LLMProvider, token_count
from logging_config import log_llm
from tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

API_URL = "https://api.groq.com/openai/v1/chat/completions"

CAPACITY_CODES = frozenset({"over_capacity", "service_unavailable"})
CAPACITY_STATUS = frozenset({503, 529})


class GroqProvider(LLMProvider):
    """Secondary provider by default; always runs the conversation classifier."""

    name = ProviderName.GROQ
    model_setting = "groq_model"
    max_tokens_setting = "groq_max_tokens"

    def __init__(self, *args, decision_model: Optional[str] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self._decision_model = decision_model

    @property
    def decision_model(self) -> str:
        return self.setting("groq_decision_model", self._decision_model or self._model)

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    def _messages(self, text: str) -> list:
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": text},
        ]

    def build_request(self, text: str) -> tuple:
        body = {
            "model": self.model,
            "messages": self._messages(text),
            "tools": ToolRegistry.get_openai_tools(),
            "tool_choice": "required",
            "temperature": 0.0,
            "max_completion_tokens": self.max_tokens,
        }
        return API_URL, self._headers(), body

    def classify_error(self, error: Any, response: httpx.Response) -> Exception:
        error = error if isinstance(error, dict) else {"message": str(error)}
        code = error.get("code") or ""
        message = error.get("message") or "unknown"

        if code == "tool_use_failed":
            logger.error("Groq tool call validation failed, retrying with schema reminder")
            return ParseError(json.dumps(error), model=self.model)
        if code in CAPACITY_CODES or response.status_code in CAPACITY_STATUS:
            return OverloadedError(model=self.model)
        return ClientError(
            f"{code or error.get('type') or 'unknown'}: {message}",
            model=self.model,
            status_code=response.status_code,
        )

    def extract_usage(self, payload: Dict[str, Any]) -> UsageCounters:
        usage = payload.get("usage")
        return UsageCounters(
            input_tokens=token_count(usage, "prompt_tokens"),
            output_tokens=token_count(usage, "completion_tokens"),
        )

    def _first_message(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            raise ClientError("Invalid Groq response format", model=self.model)
        message = choices[0].get("message")
        if not isinstance(message, dict):
            raise ClientError("Invalid Groq response format", model=self.model)
        return message

    def normalize(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        message = self._first_message(payload)

        tool_calls = message.get("tool_calls")
        if isinstance(tool_calls, list) and tool_calls:
            call = tool_calls[0]
            function = call.get("function") if isinstance(call, dict) else None
            if not isinstance(function, dict):
                raise ClientError("Invalid Groq response format", model=self.model)
            arguments = function.get("arguments") or "{}"
            try:
                tool_input = json.loads(arguments) if isinstance(arguments, str) else arguments
            except ValueError:
                # Raw text goes on to the schema check and its corrective retry
                logger.warning(f"Failed to parse Groq tool arguments: {arguments[:200]}")
                tool_input = arguments
            return {"content": [{"type": "tool_use", "name": function.get("name"), "input": tool_input}]}

        content = message.get("content")
        if isinstance(content, str):
            return {"content": [{"type": "text", "text": content}]}

        raise ClientError("Invalid Groq response format", model=self.model)

    async def complete_text(self, prompt: str, context: SessionContext) -> str:
        """Tool-less deterministic completion; returns the trimmed text."""
        model = self.decision_model
        body = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": 0.0,
            "max_completion_tokens": 16,
        }

        start = time.time()
        log_llm(logger, "start", model=model)
        try:
            response = await self.client.execute_with_retry("POST", API_URL, headers=self._headers(), json=body)
            payload = response.json()
        except ExternalServiceError as e:
            raise ClientError(str(e), model=model) from e
        except ValueError as e:
            raise ClientError(f"Unreadable response: {e}", model=model) from e
        log_llm(logger, "end", model=model, duration=time.time() - start)

        if not isinstance(payload, dict):
            raise ClientError("Invalid Groq response format", model=model)
        if payload.get("error") is not None:
            raise self.classify_error(payload["error"], response)

        self.record_usage(context, self.extract_usage(payload), model, event_type="groq_decision")
        content = self._first_message(payload).get("content")
        return content.strip() if isinstance(content, str) else ""

    async def cost_write(
        self, context: SessionContext, usage: UsageCounters, model: str, event_type: Optional[str]
    ) -> None:
        if event_type == "groq_decision":
            await self.persistence.log_groq_api_call(context, usage, model, event_type=event_type)
        else:
            await self.persistence.log_groq_api_call(context, usage, model)
