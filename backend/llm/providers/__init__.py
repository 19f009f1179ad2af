"""LLM Providers - factory for provider instances."""
import os
from typing import Optional

from errors import EnvError
from llm.context import ProviderName
from llm.cost_hooks import CostLogHook
from llm.providers.base import LLMProvider, build_retry_prompt
from services.http_client import RetryableClient

API_KEY_ENV = {
    ProviderName.CLAUDE: "ANTHROPIC_API_KEY",
    ProviderName.GROQ: "GROQ_API_KEY",
}


def create_provider(
    name: ProviderName,
    system_prompt: str,
    client: RetryableClient,
    config,
    persistence=None,
    cost_hook: Optional[CostLogHook] = None,
    api_key: str = "",
) -> LLMProvider:
    """Create a provider instance.

    Args:
        name: Which backend to build
        system_prompt: Shared system prompt text
        client: Shared retryable HTTP client
        config: RuntimeConfig; model names and token limits are read from it on every request
        api_key: Explicit key; read from the environment when empty

    Raises:
        EnvError: no API key available
    """
    variable = API_KEY_ENV[name]
    api_key = api_key or os.environ.get(variable, "")
    if not api_key:
        raise EnvError(variable)

    if name is ProviderName.CLAUDE:
        from llm.providers.claude import ClaudeProvider
        return ClaudeProvider(
            system_prompt,
            api_key,
            client,
            model=config.claude_model,
            max_tokens=config.claude_max_tokens,
            persistence=persistence,
            cost_hook=cost_hook,
            config=config,
        )
    elif name is ProviderName.GROQ:
        from llm.providers.groq import GroqProvider
        return GroqProvider(
            system_prompt,
            api_key,
            client,
            model=config.groq_model,
            max_tokens=config.groq_max_tokens,
            persistence=persistence,
            cost_hook=cost_hook,
            decision_model=config.groq_decision_model,
            config=config,
        )
    else:
        raise ValueError("Unknown provider: " + str(name))


__all__ = ["LLMProvider", "create_provider", "build_retry_prompt", "API_KEY_ENV"]
