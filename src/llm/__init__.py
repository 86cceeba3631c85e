"""
LLM Integration Module for Refinery.

This module wraps the generative text services used to refine prompts:
- Multi-provider support (Google Gemini, Anthropic Claude)
- Streaming and request/response calls behind one provider interface
- Credential lookup and a client factory that rebuilds on credential change

Usage:
    from src.llm import ClientFactory, EnvSecretStore, LLMConfig

    config = LLMConfig()
    factory = ClientFactory(config)
    provider = await factory.get(EnvSecretStore(config).get())
    async for chunk in provider.stream("Hello, world!"):
        print(chunk.text, end="")
"""

from .providers import (
    AnthropicProvider,
    GeminiProvider,
    LLMProvider,
    LLMResponse,
    ProviderType,
    StreamChunk,
    TokenUsage,
    create_llm_provider,
    get_default_model,
    list_available_models,
)
from .config import (
    API_KEY_ENV_VARS,
    DEFAULT_MODEL,
    GEMINI_MODELS,
    GeminiModelName,
    LLMConfig,
)
from .credentials import ClientFactory, EnvSecretStore

__all__ = [
    # Providers
    "LLMProvider",
    "ProviderType",
    "AnthropicProvider",
    "GeminiProvider",
    "create_llm_provider",
    "get_default_model",
    "list_available_models",
    # Response types
    "LLMResponse",
    "StreamChunk",
    "TokenUsage",
    # Config
    "LLMConfig",
    "GeminiModelName",
    "GEMINI_MODELS",
    "DEFAULT_MODEL",
    "API_KEY_ENV_VARS",
    # Credentials
    "ClientFactory",
    "EnvSecretStore",
]
