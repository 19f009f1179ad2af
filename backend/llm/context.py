"""
Per-request bookkeeping shared by the orchestrator, providers and persistence.
"""

import json
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class ProviderName(str, Enum):
    """The two configured LLM backends."""

    CLAUDE = "claude"
    GROQ = "groq"

    def other(self) -> "ProviderName":
        """The alternate provider used for fallback."""
        return ProviderName.GROQ if self is ProviderName.CLAUDE else ProviderName.CLAUDE

    @classmethod
    def values(cls) -> List[str]:
        return [member.value for member in cls]


@dataclass
class SessionContext:
    """Mutable per-request record.

    The orchestrator sets ``last_model_used`` and ``conversation_id`` while a
    query is resolved; everything else is fixed when the request arrives.
    """

    user_id: uuid.UUID
    platform: str
    session_id: uuid.UUID = field(default_factory=uuid.uuid4)
    user_phone: Optional[str] = None
    telegram_id: Optional[str] = None
    last_model_used: Optional[ProviderName] = None
    conversation_id: Optional[uuid.UUID] = None

    def with_phone(self, phone: str) -> "SessionContext":
        return replace(self, user_phone=phone)

    def with_telegram_id(self, telegram_id: str) -> "SessionContext":
        return replace(self, telegram_id=telegram_id)

    def with_conversation_id(self, conversation_id: uuid.UUID) -> "SessionContext":
        return replace(self, conversation_id=conversation_id)


@dataclass
class UsageCounters:
    """Token counters reported by a provider for one call."""

    input_tokens: int = 0
    output_tokens: int = 0
    cache_read_tokens: int = 0
    cache_write_tokens: int = 0

    @property
    def total(self) -> int:
        return self.input_tokens + self.output_tokens + self.cache_read_tokens + self.cache_write_tokens


@dataclass
class StructuredResponse:
    """What the assistant understood from a user message, as stored."""

    response_text: str
    response_metadata: Optional[Dict[str, Any]] = None
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def summary(self) -> str:
        return self.response_text

    def to_dict(self) -> Dict[str, Any]:
        return {
            "response_text": self.response_text,
            "response_metadata": self.response_metadata,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_value(cls, value: Any) -> Optional["StructuredResponse"]:
        """Build from a stored JSONB value; unreadable values become None."""
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError:
                return None
        if not isinstance(value, dict) or not isinstance(value.get("response_text"), str):
            return None
        metadata = value.get("response_metadata")
        return cls(
            response_text=value["response_text"],
            response_metadata=metadata if isinstance(metadata, dict) else None,
            timestamp=str(value.get("timestamp") or ""),
        )


@dataclass
class ConversationMessage:
    user_query: str
    structured_response: Optional[StructuredResponse] = None


@dataclass
class ConversationContext:
    """A user's recent conversation, messages oldest first."""

    conversation_id: uuid.UUID
    messages: List[ConversationMessage] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.messages
