"""Factory for creating LLM providers."""

import logging
from typing import Any, Optional

from .base import LLMProvider, ProviderType

logger = logging.getLogger(__name__)


def _coerce_provider(provider: ProviderType | str) -> ProviderType:
    if isinstance(provider, ProviderType):
        return provider
    try:
        return ProviderType(provider.lower())
    except ValueError:
        raise ValueError(
            f"Unknown provider: {provider}. "
            f"Supported providers: {[p.value for p in ProviderType]}"
        )


def create_llm_provider(
    provider: ProviderType | str,
    api_key: str,
    default_model: Optional[str] = None,
    **kwargs: Any,
) -> LLMProvider:
    """
    Create an LLM provider instance bound to a credential.

    Args:
        provider: The provider type (ProviderType enum or string)
        api_key: Credential for the service
        default_model: Optional default model name
        **kwargs: Additional provider-specific arguments

    Returns:
        An LLMProvider instance (not yet started)

    Raises:
        ValueError: If the provider type is unknown

    Example:
        provider = create_llm_provider("gemini", api_key, "gemini-2.5-flash")
        async with provider:
            response = await provider.complete("Hello!")
    """
    provider = _coerce_provider(provider)

    if provider == ProviderType.ANTHROPIC:
        from .anthropic import DEFAULT_ANTHROPIC_MODEL, AnthropicProvider

        return AnthropicProvider(
            api_key=api_key,
            default_model=default_model or DEFAULT_ANTHROPIC_MODEL,
            **kwargs,
        )

    from .gemini import DEFAULT_GEMINI_MODEL, GeminiProvider

    return GeminiProvider(
        api_key=api_key,
        default_model=default_model or DEFAULT_GEMINI_MODEL,
        **kwargs,
    )


def get_default_model(provider: ProviderType | str) -> str:
    """Get the default model for a provider."""
    from .anthropic import DEFAULT_ANTHROPIC_MODEL
    from .gemini import DEFAULT_GEMINI_MODEL

    defaults = {
        ProviderType.ANTHROPIC: DEFAULT_ANTHROPIC_MODEL,
        ProviderType.GEMINI: DEFAULT_GEMINI_MODEL,
    }
    return defaults[_coerce_provider(provider)]


def list_available_models(provider: ProviderType | str) -> list[str]:
    """List available models for a provider."""
    models = {
        ProviderType.ANTHROPIC: [
            "claude-opus-4-20250514",
            "claude-sonnet-4-20250514",
            "claude-3-5-haiku-20241022",
        ],
        ProviderType.GEMINI: [
            "gemini-2.5-flash",
            "gemini-2.5-flash-lite",
            "gemini-2.5-pro",
            "gemini-3-pro-preview",
        ],
    }
    return models[_coerce_provider(provider)]
