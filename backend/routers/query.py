"""
PriceBot Query Router

Turns a customer's message into a structured Query. Channel front-ends
(WhatsApp, Telegram, web) post the raw text here and execute the returned
Query themselves.
"""

import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from errors import LLMError, PricebotError, error_response, log_error, success_response
from llm.context import SessionContext, StructuredResponse
from llm.query import Query

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["query"])


class QueryRequest(BaseModel):
    user_id: uuid.UUID
    platform: str = Field(min_length=1, max_length=32)
    text: str = Field(min_length=1, max_length=8000)
    user_phone: Optional[str] = None
    telegram_id: Optional[str] = None


def _session_context(body: QueryRequest) -> SessionContext:
    context = SessionContext(user_id=body.user_id, platform=body.platform)
    if body.user_phone:
        context = context.with_phone(body.user_phone)
    if body.telegram_id:
        context = context.with_telegram_id(body.telegram_id)
    return context


async def _save_message(persistence, context: SessionContext, text: str, query: Query) -> None:
    """Record the exchange so the next message can continue it."""
    if persistence is None or context.conversation_id is None:
        return

    structured = StructuredResponse(
        response_text=query.summary(),
        response_metadata={
            "kind": query.kind,
            "model": context.last_model_used.value if context.last_model_used else None,
        },
    )
    try:
        await persistence.save_conversation_message(
            context.conversation_id, context.session_id, text, structured
        )
    except PricebotError as e:
        log_error(logger, e, context="Save conversation message", include_traceback=False)


@router.post("/query")
async def resolve_query(body: QueryRequest, request: Request) -> Dict[str, Any]:
    """
    Resolve free text into a Query.

    Returns the Query as tagged JSON together with the provider that
    produced it and the conversation it belongs to. When both providers
    fail the error is returned with HTTP 502.
    """
    orchestrator = request.app.state.orchestrator
    persistence = getattr(request.app.state, "persistence", None)
    context = _session_context(body)

    try:
        query = await orchestrator.parse_query(body.text, context)
    except LLMError as e:
        log_error(logger, e, context="Query resolution", include_traceback=False)
        return JSONResponse(status_code=502, content=error_response(e))

    await _save_message(persistence, context, body.text, query)

    return success_response(
        query=query.model_dump(mode="json"),
        model=context.last_model_used.value if context.last_model_used else None,
        conversation_id=str(context.conversation_id) if context.conversation_id else None,
    )
