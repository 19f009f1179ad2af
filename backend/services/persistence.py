"""
Conversation and cost persistence on top of DatabaseManager.

Every method raises ExternalServiceError(service="database") on failure.
Callers on the query path log and continue; nothing here is allowed to
decide the outcome of a query.
"""

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from errors import ExternalServiceError
from llm.context import (
    ConversationContext,
    ConversationMessage,
    SessionContext,
    StructuredResponse,
    UsageCounters,
)
from services.database import DatabaseManager

logger = logging.getLogger(__name__)

PER_MILLION = 1_000_000.0


@dataclass
class ClaudeRates:
    """USD per million tokens."""

    input_token: float = 3.0
    cache_hit_refresh: float = 0.3
    output_token: float = 15.0
    one_h_cache_writes: float = 6.0


@dataclass
class GroqRates:
    """USD per million tokens."""

    input_token: float = 1.0
    output_token: float = 3.0


@dataclass
class CostEvent:
    user_id: uuid.UUID
    query_session_id: uuid.UUID
    event_type: str
    unit_cost: float
    unit_type: str
    units_consumed: int
    cost_amount: float
    platform: str
    metadata: Optional[Dict[str, Any]] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def total(
        cls,
        context: SessionContext,
        event_type: str,
        total_cost: float,
        units: int,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "CostEvent":
        """Event whose unit cost already is the total for the call."""
        return cls(
            user_id=context.user_id,
            query_session_id=context.session_id,
            event_type=event_type,
            unit_cost=total_cost,
            unit_type="per_1m_tokens",
            units_consumed=units,
            cost_amount=total_cost,
            platform=context.platform,
            metadata=metadata,
        )


class PersistenceService:
    """Conversation history, cost events and rate lookups."""

    def __init__(self, db: DatabaseManager):
        self.db = db

    # === Conversations ===

    async def get_recent_conversation(
        self, user_id: uuid.UUID, window_hours: int = 24
    ) -> Optional[ConversationContext]:
        """Most recent conversation active inside the window, with all its messages."""
        since = datetime.now(timezone.utc) - timedelta(hours=window_hours)
        row = await self.db.fetchrow(
            """
            SELECT id FROM conversations
            WHERE user_id = $1 AND last_activity_at >= $2
            ORDER BY last_activity_at DESC
            LIMIT 1
            """,
            user_id,
            since,
        )
        if row is None:
            return None

        rows = await self.db.fetch(
            """
            SELECT user_query, structured_response FROM conversation_messages
            WHERE conversation_id = $1
            ORDER BY created_at ASC
            """,
            row["id"],
        )
        messages = [
            ConversationMessage(
                user_query=r["user_query"] or "",
                structured_response=StructuredResponse.from_value(r["structured_response"]),
            )
            for r in rows
        ]
        return ConversationContext(conversation_id=row["id"], messages=messages)

    async def create_conversation(self, user_id: uuid.UUID) -> uuid.UUID:
        conversation_id = await self.db.fetchval(
            "INSERT INTO conversations (user_id) VALUES ($1) RETURNING id",
            user_id,
        )
        if conversation_id is None:
            raise ExternalServiceError("No conversation ID returned", service="database")
        return conversation_id

    async def save_conversation_message(
        self,
        conversation_id: uuid.UUID,
        session_id: uuid.UUID,
        user_query: str,
        structured_response: Optional[StructuredResponse],
    ) -> None:
        payload = json.dumps(structured_response.to_dict()) if structured_response else None
        await self.db.execute(
            """
            INSERT INTO conversation_messages (conversation_id, session_id, user_query, structured_response)
            VALUES ($1, $2, $3, $4::jsonb)
            """,
            conversation_id,
            session_id,
            user_query,
            payload,
        )
        await self.db.execute(
            "UPDATE conversations SET last_activity_at = NOW() WHERE id = $1",
            conversation_id,
        )

    # === Costs ===

    async def log_cost_event(self, event: CostEvent) -> None:
        await self.db.execute(
            """
            INSERT INTO cost_events (
                user_id, query_session_id, event_type, unit_cost, unit_type,
                units_consumed, cost_amount, metadata, platform, created_at
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8::jsonb, $9, $10)
            """,
            event.user_id,
            event.query_session_id,
            event.event_type,
            event.unit_cost,
            event.unit_type,
            event.units_consumed,
            event.cost_amount,
            json.dumps(event.metadata) if event.metadata is not None else None,
            event.platform,
            event.created_at,
        )

    async def _fetch_rates(self, provider: str) -> Dict[str, float]:
        rows = await self.db.fetch(
            """
            SELECT DISTINCT ON (cost_type) cost_type, unit_cost FROM cost_rate_history
            WHERE service_provider = $1
            ORDER BY cost_type, effective_from DESC
            """,
            provider,
        )
        return {r["cost_type"]: float(r["unit_cost"]) for r in rows}

    async def get_claude_rates(self) -> ClaudeRates:
        """Current Anthropic rates, defaults when the lookup fails."""
        rates = ClaudeRates()
        try:
            found = await self._fetch_rates("anthropic")
        except ExternalServiceError as e:
            logger.warning(f"Claude rate lookup failed, using defaults: {e}")
            return rates
        rates.input_token = found.get("input_token", rates.input_token)
        rates.output_token = found.get("output_token", rates.output_token)
        rates.cache_hit_refresh = found.get("cache_hit_refresh", rates.cache_hit_refresh)
        rates.one_h_cache_writes = found.get("1h_cache_writes", rates.one_h_cache_writes)
        return rates

    async def get_groq_rates(self) -> GroqRates:
        """Current Groq rates, defaults when the lookup fails."""
        rates = GroqRates()
        try:
            found = await self._fetch_rates("groq_kimi_k2")
        except ExternalServiceError as e:
            logger.warning(f"Groq rate lookup failed, using defaults: {e}")
            return rates
        rates.input_token = found.get("input_token", rates.input_token)
        rates.output_token = found.get("output_token", rates.output_token)
        return rates

    async def log_claude_api_call(self, context: SessionContext, usage: UsageCounters, model: str) -> None:
        rates = await self.get_claude_rates()
        input_cost = usage.input_tokens * rates.input_token / PER_MILLION
        cache_read_cost = usage.cache_read_tokens * rates.cache_hit_refresh / PER_MILLION
        cache_write_cost = usage.cache_write_tokens * rates.one_h_cache_writes / PER_MILLION
        output_cost = usage.output_tokens * rates.output_token / PER_MILLION

        metadata = {
            "model": model,
            "input_tokens": usage.input_tokens,
            "cache_read_tokens": usage.cache_read_tokens,
            "cache_write_tokens": usage.cache_write_tokens,
            "output_tokens": usage.output_tokens,
            "input_cost": input_cost,
            "cache_read_cost": cache_read_cost,
            "output_cost": output_cost,
            "cache_write_cost": cache_write_cost,
        }
        total_cost = input_cost + cache_read_cost + cache_write_cost + output_cost
        await self.log_cost_event(CostEvent.total(context, "claude_api", total_cost, usage.total, metadata))

    async def log_groq_api_call(
        self,
        context: SessionContext,
        usage: UsageCounters,
        model: str,
        event_type: str = "groq_api",
    ) -> None:
        rates = await self.get_groq_rates()
        input_cost = usage.input_tokens * rates.input_token / PER_MILLION
        output_cost = usage.output_tokens * rates.output_token / PER_MILLION

        metadata = {
            "model": model,
            "prompt_tokens": usage.input_tokens,
            "completion_tokens": usage.output_tokens,
            "input_cost": input_cost,
            "output_cost": output_cost,
        }
        await self.log_cost_event(
            CostEvent.total(context, event_type, input_cost + output_cost, usage.total, metadata)
        )
