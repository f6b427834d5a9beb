"""
Provider factory. Reads config, returns the right LLMProvider.
"""

import logging

from config.settings import Config
from llm.provider import LLMProvider, LLMError

log = logging.getLogger(__name__)

PROVIDERS = ("claude", "openai", "openrouter")


def create_provider(config: Config) -> LLMProvider:
    """Create LLM provider based on config. Provider selected at runtime."""
    provider = config.llm_provider.lower()

    match provider:
        case "claude":
            from llm.claude_provider import ClaudeProvider
            return ClaudeProvider(
                api_key=config.anthropic_api_key,
                model=config.anthropic_model,
            )
        case "openai":
            from llm.openai_provider import OpenAIProvider
            return OpenAIProvider(
                api_key=config.openai_api_key,
                model=config.openai_model,
            )
        case "openrouter":
            from llm.openrouter_provider import OpenRouterProvider
            return OpenRouterProvider(
                api_key=config.openrouter_api_key,
                model=config.openrouter_model,
            )
        case _:
            raise LLMError(
                f"Unknown LLM provider: '{provider}'. "
                f"Set RADAR_LLM_PROVIDER to one of {', '.join(PROVIDERS)}."
            )


def optional_provider(config: Config) -> LLMProvider | None:
    """
    Provider for features that degrade without an LLM (the analysis source).
    Returns None when no key is configured or the SDK is missing.
    """
    if not config.llm_configured():
        return None
    try:
        return create_provider(config)
    except LLMError as e:
        log.warning(f"LLM unavailable, skipping LLM-backed features: {e}")
        return None
