"""
Tests for conversation transcripts and the stored response record.
"""

import json
import uuid

from llm.context import ConversationContext, ConversationMessage, SessionContext, StructuredResponse
from llm.conversation import (
    CLASSIFIER_INSTRUCTION,
    build_classifier_prompt,
    build_continued_query,
    build_transcript,
    is_continuation,
)


def conversation(*pairs):
    return ConversationContext(
        conversation_id=uuid.uuid4(),
        messages=[
            ConversationMessage(query, StructuredResponse(understood) if understood else None)
            for query, understood in pairs
        ],
    )


class TestTranscript:
    """Plain-text transcript, oldest first."""

    def test_pairs_in_order(self):
        transcript = build_transcript(
            conversation(("price of 4C x 16", "Prices for kei 4C x 16"), ("and 4C x 25?", "Prices for kei 4C x 25"))
        )
        assert transcript.splitlines() == [
            "User query: price of 4C x 16",
            "What the assistant understood: Prices for kei 4C x 16",
            "User query: and 4C x 25?",
            "What the assistant understood: Prices for kei 4C x 25",
        ]

    def test_message_without_response(self):
        """A message whose response was never stored contributes only the query."""
        assert build_transcript(conversation(("hello", None))) == "User query: hello"

    def test_empty_conversation(self):
        assert conversation().is_empty()
        assert build_transcript(conversation()) == ""


class TestPrompts:
    """Classifier and continued-query text."""

    def test_classifier_prompt(self):
        prompt = build_classifier_prompt("User query: a", "b")
        assert prompt.startswith("Previous conversation:\nUser query: a\n\nNew message: b")
        assert prompt.endswith(CLASSIFIER_INSTRUCTION)

    def test_continued_query(self):
        assert build_continued_query("User query: a", "b") == "Previous conversation:\nUser query: a\n\nCurrent query: b"

    def test_is_continuation(self):
        assert is_continuation("YES")
        assert is_continuation(" yes\n")
        assert not is_continuation("NO")
        assert not is_continuation("YES.")
        assert not is_continuation("")
        assert not is_continuation(None)


class TestStructuredResponse:
    """Stored response record."""

    def test_round_trip_through_json(self):
        original = StructuredResponse("Stock availability for RG6", {"kind": "GetStock", "model": "claude"})
        restored = StructuredResponse.from_value(json.dumps(original.to_dict()))
        assert restored == original
        assert restored.summary() == "Stock availability for RG6"

    def test_from_dict(self):
        restored = StructuredResponse.from_value({"response_text": "x"})
        assert restored.response_text == "x"
        assert restored.response_metadata is None

    def test_unreadable_values(self):
        assert StructuredResponse.from_value(None) is None
        assert StructuredResponse.from_value("{broken") is None
        assert StructuredResponse.from_value({"response_text": 42}) is None


class TestSessionContext:
    """Per-request context builders."""

    def test_builders_copy(self):
        context = SessionContext(user_id=uuid.uuid4(), platform="telegram")
        enriched = context.with_telegram_id("12345").with_phone("+919800000000")

        assert enriched.telegram_id == "12345"
        assert enriched.user_phone == "+919800000000"
        assert enriched.session_id == context.session_id
        assert context.telegram_id is None

    def test_with_conversation_id(self):
        conversation_id = uuid.uuid4()
        context = SessionContext(user_id=uuid.uuid4(), platform="whatsapp")
        resumed = context.with_conversation_id(conversation_id)

        assert resumed.conversation_id == conversation_id
        assert resumed.session_id == context.session_id
        assert context.conversation_id is None

    def test_sessions_are_unique(self):
        user = uuid.uuid4()
        assert SessionContext(user, "web").session_id != SessionContext(user, "web").session_id
