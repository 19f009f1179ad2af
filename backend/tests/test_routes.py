"""
HTTP surface tests.

The query and admin routers are mounted on a minimal app with the
orchestrator and persistence mocked, so no provider or database is needed.
"""

import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI
from starlette.testclient import TestClient

from config import runtime_config
from errors import ExternalServiceError, OverloadedError
from llm.context import ProviderName
from llm.query import GetStock
from routers import admin_llm, query


USER_ID = "00000000-0000-0000-0000-000000000042"
CONVERSATION_ID = uuid.UUID("00000000-0000-0000-0000-0000000000c2")


def _build_test_app(orchestrator, persistence) -> FastAPI:
    app = FastAPI()
    app.include_router(query.router)
    app.include_router(admin_llm.router)
    app.state.orchestrator = orchestrator
    app.state.persistence = persistence
    return app


@pytest.fixture()
def orchestrator():
    """Resolves every message to a stock query via Claude."""

    async def parse_query(text, context):
        context.last_model_used = ProviderName.CLAUDE
        context.conversation_id = CONVERSATION_ID
        return GetStock(query=text)

    mock = MagicMock()
    mock.parse_query = AsyncMock(side_effect=parse_query)
    return mock


@pytest.fixture()
def client(orchestrator, persistence):
    with TestClient(_build_test_app(orchestrator, persistence)) as c:
        yield c


@pytest.fixture()
def admin_config(tmp_path, monkeypatch):
    """Isolate the global config: overrides go to a temp file, routing is restored."""
    original = runtime_config.primary_llm
    monkeypatch.setattr(runtime_config, "_overrides_path", tmp_path / "config_overrides.json")
    monkeypatch.setattr(runtime_config, "admin_key", "")
    yield runtime_config
    runtime_config.update(primary_llm=original)


class TestQueryRoute:
    """POST /api/query"""

    def test_resolves_query(self, client, orchestrator, persistence):
        response = client.post(
            "/api/query",
            json={"user_id": USER_ID, "platform": "whatsapp", "text": "RG6 stock", "user_phone": "+919800000000"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "query": {"kind": "GetStock", "query": "RG6 stock"},
            "model": "claude",
            "conversation_id": str(CONVERSATION_ID),
        }

        text, context = orchestrator.parse_query.await_args.args
        assert text == "RG6 stock"
        assert context.user_id == uuid.UUID(USER_ID)
        assert context.user_phone == "+919800000000"

    def test_saves_conversation_message(self, client, persistence):
        client.post("/api/query", json={"user_id": USER_ID, "platform": "web", "text": "RG6 stock"})

        conversation_id, session_id, text, structured = persistence.save_conversation_message.await_args.args
        assert conversation_id == CONVERSATION_ID
        assert text == "RG6 stock"
        assert structured.response_text == "Stock availability for RG6 stock"
        assert structured.response_metadata == {"kind": "GetStock", "model": "claude"}

    def test_save_failure_still_answers(self, client, persistence):
        persistence.save_conversation_message.side_effect = ExternalServiceError("down", service="database")
        response = client.post("/api/query", json={"user_id": USER_ID, "platform": "web", "text": "RG6"})
        assert response.status_code == 200
        assert response.json()["success"] is True

    def test_provider_failure(self, client, orchestrator):
        orchestrator.parse_query.side_effect = OverloadedError(model="groq-test")
        response = client.post("/api/query", json={"user_id": USER_ID, "platform": "web", "text": "RG6"})

        assert response.status_code == 502
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "LLM_OVERLOADED"
        assert body["error"]["message"] == "API overloaded"

    def test_invalid_body(self, client):
        response = client.post("/api/query", json={"user_id": "not-a-uuid", "platform": "web", "text": "RG6"})
        assert response.status_code == 422

    def test_without_persistence(self, orchestrator):
        with TestClient(_build_test_app(orchestrator, None)) as c:
            response = c.post("/api/query", json={"user_id": USER_ID, "platform": "web", "text": "RG6"})
        assert response.status_code == 200


class TestAdminLLMRoute:
    """GET / PUT /api/admin/llm"""

    def test_get(self, client, admin_config):
        response = client.get("/api/admin/llm")
        assert response.status_code == 200
        llm = response.json()["llm"]
        assert llm["primary"] == admin_config.routing.primary.value
        assert llm["secondary"] == admin_config.routing.secondary.value

    def test_switch_primary(self, client, admin_config, tmp_path):
        target = admin_config.routing.secondary.value
        response = client.put("/api/admin/llm", json={"primary_llm": target})

        assert response.status_code == 200
        body = response.json()
        assert body["updated"] == ["primary_llm"]
        assert body["llm"]["primary"] == target
        assert admin_config.routing.primary.value == target
        assert (tmp_path / "config_overrides.json").exists()

    def test_reject_unknown_provider(self, client, admin_config):
        before = admin_config.routing
        response = client.put("/api/admin/llm", json={"primary_llm": "gpt-4"})

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "VALIDATION_INVALID_VALUE"
        assert admin_config.routing == before

    def test_empty_update(self, client, admin_config):
        response = client.put("/api/admin/llm", json={})
        assert response.json() == {"success": True, "updated": [], "message": "No changes"}

    def test_admin_key_required(self, client, admin_config, monkeypatch):
        monkeypatch.setattr(admin_config, "admin_key", "s3cret")

        assert client.get("/api/admin/llm").status_code == 401
        assert client.get("/api/admin/llm", headers={"X-Admin-Key": "wrong"}).status_code == 401
        assert client.get("/api/admin/llm", headers={"X-Admin-Key": "s3cret"}).status_code == 200


class TestHealth:
    """GET /health on the real app."""

    def test_health_reports_database(self):
        import main

        db = MagicMock()
        db.health_check = AsyncMock(return_value={"status": "degraded", "mode": "none"})
        with patch("main.get_database", AsyncMock(return_value=db)):
            response = TestClient(main.app).get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "degraded"
        assert body["database"]["status"] == "degraded"
        assert body["llm"]["primary"] in ("claude", "groq")
