"""
LLM Provider implementations.

This module provides a unified interface for the generative text services
(Google Gemini, Anthropic Claude) behind a common abstraction layer.
"""

from .base import (
    LLMProvider,
    LLMResponse,
    ProviderType,
    StreamChunk,
    TokenUsage,
)
from .anthropic import AnthropicProvider
from .gemini import GeminiProvider
from .factory import create_llm_provider, get_default_model, list_available_models

__all__ = [
    # Base
    "LLMProvider",
    "LLMResponse",
    "ProviderType",
    "StreamChunk",
    "TokenUsage",
    # Providers
    "AnthropicProvider",
    "GeminiProvider",
    # Factory
    "create_llm_provider",
    "get_default_model",
    "list_available_models",
]
