"""
LLM Orchestrator - turns a user's message into a structured Query.

Per query, strictly in order:
1. Conversation continuity: find the user's recent conversation, ask the
   Groq classifier whether the message continues it, and either prefix the
   transcript (continue) or open a new conversation.
2. Provider dispatch on the routing snapshot's primary, with exactly one
   fallback to the secondary on any LLMError.
3. Tool resolution of the provider's response: action tools map directly to
   a Query, the information tool is executed locally and its result sent
   back to the same provider for one more round-trip.

Each provider retries a schema failure once on its own, so a single query
costs at most four main calls plus the classifier call.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from config import RuntimeConfig
from errors import LLMError, ParseError, PricebotError, SystemPromptError, format_error_for_llm, log_error
from llm.context import ConversationContext, ProviderName, SessionContext
from llm.conversation import build_classifier_prompt, build_continued_query, build_transcript, is_continuation
from llm.cost_hooks import CostLogHook
from llm.providers import LLMProvider, create_provider
from llm.query import Query, UnsupportedQuery
from logging_config import log_message_in, log_message_out, log_tool
from services.http_client import RetryableClient
from tools.registry import ToolRegistry, ToolResult, register_all_tools

logger = logging.getLogger(__name__)

CONTINUATION_TEMPLATE = (
    "Available pricelists: {result}\n\n"
    "Original user query: {query}\n\n"
    "Now use find_price_list with appropriate keywords based on the available pricelists above."
)


def load_system_prompt(path: str | Path) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise SystemPromptError(f"{path}: {e}") from e


class LLMOrchestrator:
    """Provider selection, fallback, tool resolution and conversation continuity."""

    def __init__(
        self,
        providers: Dict[ProviderName, LLMProvider],
        config: RuntimeConfig,
        persistence=None,
        pricelist_service=None,
        cost_hook: Optional[CostLogHook] = None,
    ):
        missing = [name.value for name in ProviderName if name not in providers]
        if missing:
            raise ValueError(f"Missing providers: {missing}")
        self.providers = providers
        self.config = config
        self.persistence = persistence
        self.pricelist_service = pricelist_service
        self.cost_hook = cost_hook or CostLogHook()
        register_all_tools()

    @classmethod
    def from_config(
        cls,
        config: RuntimeConfig,
        client: RetryableClient,
        persistence=None,
        pricelist_service=None,
        cost_hook: Optional[CostLogHook] = None,
    ) -> "LLMOrchestrator":
        """Build both providers from config and the environment.

        Raises:
            SystemPromptError: system prompt file unreadable
            EnvError: an API key is missing
        """
        register_all_tools()
        prompt = load_system_prompt(config.system_prompt_path)
        cost_hook = cost_hook or CostLogHook()
        providers = {
            name: create_provider(name, prompt, client, config, persistence=persistence, cost_hook=cost_hook)
            for name in ProviderName
        }
        return cls(providers, config, persistence=persistence, pricelist_service=pricelist_service, cost_hook=cost_hook)

    def set_pricelist_service(self, pricelist_service) -> None:
        self.pricelist_service = pricelist_service

    def provider(self, name: Optional[ProviderName]) -> LLMProvider:
        """Provider for a name; unset or unknown names mean Claude."""
        try:
            return self.providers[ProviderName(name)]
        except (ValueError, KeyError):
            return self.providers[ProviderName.CLAUDE]

    # =========================================================================
    # ENTRY POINT
    # =========================================================================

    async def parse_query(self, query: str, context: SessionContext) -> Query:
        """Resolve a user's message into a Query.

        Sets ``context.last_model_used`` to the provider that produced (or
        last attempted) the result and ``context.conversation_id`` when
        conversation tracking is available.

        Raises:
            LLMError: both providers failed; the secondary's error is raised
        """
        log_message_in(logger, query, user_id=context.user_id, platform=context.platform)

        text = await self.prepare_conversation(query, context)

        routing = self.config.routing
        context.last_model_used = routing.primary
        try:
            result = await self.providers[routing.primary].try_parse(text, context, self)
        except LLMError as e:
            if e.final:
                raise
            logger.error(f"{routing.primary.value} failed with error: {e}, trying {routing.secondary.value} fallback")
            context.last_model_used = routing.secondary
            result = await self.providers[routing.secondary].try_parse(text, context, self)

        log_message_out(
            logger,
            result.kind,
            model=context.last_model_used.value if context.last_model_used else "",
            conversation_id=str(context.conversation_id) if context.conversation_id else None,
        )
        return result

    # =========================================================================
    # TOOL RESOLUTION
    # =========================================================================

    async def resolve_response(
        self,
        response: Dict[str, Any],
        original_query: str,
        context: SessionContext,
        multistep: bool = True,
    ) -> Query:
        """Interpret a provider's normalized response.

        The first tool_use block decides the result; no tool_use at all is an
        UnsupportedQuery. With ``multistep`` off the information tool maps to
        its own Query variant instead of triggering another round-trip.

        Raises:
            ParseError: malformed blocks or tool input that fails its schema
        """
        logger.debug(f"Raw response: {json.dumps(response, default=str)[:2000]}")

        content = response.get("content") if isinstance(response, dict) else None
        if not isinstance(content, list):
            raise ParseError(f"Response has no content blocks: {json.dumps(response, default=str)[:500]}")

        for block in content:
            if not isinstance(block, dict) or block.get("type") != "tool_use":
                continue

            name = block.get("name")
            if not isinstance(name, str):
                raise ParseError(f"tool_use block without a tool name: {json.dumps(block, default=str)[:500]}")
            tool_input = block.get("input")
            if not isinstance(tool_input, dict):
                raise ParseError(
                    f"{name} input must be a JSON object, got {json.dumps(tool_input, default=str)[:500]}", tool=name
                )

            if multistep and ToolRegistry.is_information_tool(name) and self.pricelist_service is not None:
                log_tool(logger, name, "start", input=json.dumps(tool_input))
                result = ToolRegistry.execute(name, tool_input, pricelist_service=self.pricelist_service)
                log_tool(logger, name, "end", success=result.success)
                return await self.continue_with_tool_result(name, original_query, result, context)

            query = ToolRegistry.to_query(name, tool_input)
            log_tool(logger, name, "end", kind=query.kind)
            return query

        return UnsupportedQuery()

    async def continue_with_tool_result(
        self,
        tool_name: str,
        original_query: str,
        result: ToolResult,
        context: SessionContext,
    ) -> Query:
        """Second round-trip on the provider that made the first one.

        Errors from this call are marked final: they skip the caller's
        schema retry and the orchestrator fallback.
        """
        if result.success:
            result_text = json.dumps(result.data, indent=2)
        else:
            result_text = format_error_for_llm(result.error or "unknown error", tool=tool_name)

        continued = CONTINUATION_TEMPLATE.format(result=result_text, query=original_query)
        provider = self.provider(context.last_model_used)
        try:
            return await provider.try_parse(continued, context, self, multistep=False)
        except LLMError as e:
            e.final = True
            raise

    # =========================================================================
    # CONVERSATION CONTINUITY
    # =========================================================================

    async def prepare_conversation(self, query: str, context: SessionContext) -> str:
        """Decide whether the message continues the user's recent conversation.

        Returns the text to send to the providers: the message itself, or the
        prior transcript followed by the message when it continues.
        """
        if self.persistence is None:
            return query

        conversation = await self._recent_conversation(context)
        if conversation is not None and not conversation.is_empty():
            transcript = build_transcript(conversation)
            if await self.should_continue(transcript, query, context):
                logger.info(f"Continuing conversation {conversation.conversation_id}")
                context.conversation_id = conversation.conversation_id
                return build_continued_query(transcript, query)

        try:
            context.conversation_id = await self.persistence.create_conversation(context.user_id)
            logger.info(f"Started conversation {context.conversation_id}")
        except PricebotError as e:
            log_error(logger, e, context="Create conversation", include_traceback=False)
            context.conversation_id = None
        return query

    async def should_continue(self, transcript: str, query: str, context: SessionContext) -> bool:
        # Always the Groq classifier, whichever provider is primary
        classifier = self.providers[ProviderName.GROQ]
        try:
            answer = await classifier.complete_text(build_classifier_prompt(transcript, query), context)
        except LLMError as e:
            log_error(logger, e, context="Conversation classifier", include_traceback=False)
            return False
        logger.info(f"Conversation classifier answered {answer[:20]!r}")
        return is_continuation(answer)

    async def _recent_conversation(self, context: SessionContext) -> Optional[ConversationContext]:
        try:
            return await self.persistence.get_recent_conversation(
                context.user_id, window_hours=self.config.conversation_window_hours
            )
        except PricebotError as e:
            log_error(logger, e, context="Conversation lookup", include_traceback=False)
            return None
