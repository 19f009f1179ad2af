"""
Conversation continuity prompts.

The transcript is plain text, oldest message first, and is reused verbatim
both for the YES/NO classifier and as the prefix of a continued query.
"""

from llm.context import ConversationContext

CLASSIFIER_INSTRUCTION = (
    "You are deciding whether a new message from a customer of an electrical cable "
    "distributor continues the conversation above or starts a new, unrelated request.\n"
    "Answer YES if the new message refers to, modifies, or depends on anything in the "
    "previous conversation (for example changing a quantity, brand, discount or item, "
    "or asking for a quotation of items priced earlier).\n"
    "Answer NO if it can be understood completely on its own.\n"
    "Reply with exactly one word: YES or NO."
)


def build_transcript(conversation: ConversationContext) -> str:
    lines = []
    for message in conversation.messages:
        lines.append(f"User query: {message.user_query}")
        if message.structured_response is not None:
            lines.append(f"What the assistant understood: {message.structured_response.summary()}")
    return "\n".join(lines)


def build_classifier_prompt(transcript: str, query: str) -> str:
    return f"Previous conversation:\n{transcript}\n\nNew message: {query}\n\n{CLASSIFIER_INSTRUCTION}"


def build_continued_query(transcript: str, query: str) -> str:
    return f"Previous conversation:\n{transcript}\n\nCurrent query: {query}"


def is_continuation(answer: str) -> bool:
    """Only an exact YES continues; anything else starts fresh."""
    return (answer or "").strip().upper() == "YES"
