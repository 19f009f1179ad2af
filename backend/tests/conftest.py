"""
Shared pytest fixtures for the PriceBot query-understanding tests.

Provider wire tests run against httpx.MockTransport; persistence is an
AsyncMock so no PostgreSQL is needed.
"""

import json
import uuid
from typing import Callable, List
from unittest.mock import AsyncMock

import httpx
import pytest

from config import RuntimeConfig
from llm.context import SessionContext
from services.http_client import RetryableClient
from services.pricelists import PriceListService
from tools.registry import register_all_tools


SAMPLE_PRICELISTS = [
    {
        "pdf_path": "data/pricelists/kei_lt_armoured_latest.pdf",
        "brand": "kei",
        "keywords": ["latest armoured", "armoured", "latest"],
    },
    {
        "pdf_path": "data/pricelists/kei_flexible_latest.pdf",
        "brand": "kei",
        "keywords": ["flexible", "house wire"],
    },
    {
        "pdf_path": "data/pricelists/polycab_current.pdf",
        "brand": "Polycab",
        "keywords": ["current cable", "current"],
    },
]


@pytest.fixture(autouse=True)
def tools():
    """Tool catalog is process-global; make sure it is populated."""
    register_all_tools()


@pytest.fixture
def config(tmp_path):
    """Fresh config with overrides written to a temp file."""
    return RuntimeConfig(
        primary_llm="claude",
        http_retry_backoff=0.0,
        _overrides_path=tmp_path / "config_overrides.json",
    )


@pytest.fixture
def context():
    return SessionContext(user_id=uuid.UUID("00000000-0000-0000-0000-000000000001"), platform="whatsapp")


@pytest.fixture
def pricelist_service():
    return PriceListService(SAMPLE_PRICELISTS)


@pytest.fixture
def persistence():
    """Persistence double with no recent conversation."""
    mock = AsyncMock()
    mock.get_recent_conversation.return_value = None
    mock.create_conversation.return_value = uuid.UUID("00000000-0000-0000-0000-0000000000c1")
    return mock


class RecordingTransport:
    """httpx.MockTransport that replays queued responses and records requests."""

    def __init__(self, responses: List = None):
        self.responses = list(responses or [])
        self.requests: List[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError(f"Unexpected request to {request.url}")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(request)
        return response

    def bodies(self) -> List[dict]:
        return [json.loads(r.content) for r in self.requests]

    def client(self, max_retries: int = 1) -> RetryableClient:
        return RetryableClient(timeout=5.0, max_retries=max_retries, backoff=0.0, transport=self.transport)


@pytest.fixture
def recording_transport() -> Callable[..., RecordingTransport]:
    return RecordingTransport


# === Canned provider payloads ===


def claude_tool_use(name: str, tool_input: dict, usage: dict = None) -> httpx.Response:
    return httpx.Response(
        200,
        json={
            "id": "msg_1",
            "type": "message",
            "role": "assistant",
            "content": [{"type": "tool_use", "id": "toolu_1", "name": name, "input": tool_input}],
            "usage": usage or {"input_tokens": 100, "output_tokens": 20},
        },
    )


def claude_error(error_type: str, message: str, status: int = 400) -> httpx.Response:
    return httpx.Response(status, json={"type": "error", "error": {"type": error_type, "message": message}})


def groq_tool_call(name: str, arguments, usage: dict = None) -> httpx.Response:
    if not isinstance(arguments, str):
        arguments = json.dumps(arguments)
    return httpx.Response(
        200,
        json={
            "id": "chatcmpl-1",
            "choices": [
                {
                    "index": 0,
                    "message": {
                        "role": "assistant",
                        "content": None,
                        "tool_calls": [
                            {"id": "call_1", "type": "function", "function": {"name": name, "arguments": arguments}}
                        ],
                    },
                    "finish_reason": "tool_calls",
                }
            ],
            "usage": usage or {"prompt_tokens": 80, "completion_tokens": 15},
        },
    )


def groq_text(content: str) -> httpx.Response:
    return httpx.Response(
        200,
        json={
            "id": "chatcmpl-2",
            "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
            "usage": {"prompt_tokens": 40, "completion_tokens": 1},
        },
    )


def groq_error(code: str, message: str = "failed", status: int = 400) -> httpx.Response:
    return httpx.Response(status, json={"error": {"message": message, "type": "invalid_request_error", "code": code}})
