"""Configuration models for LLM integration."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, SecretStr

from .providers.base import ProviderType


class GeminiModelName(str, Enum):
    """Supported Gemini model names."""

    GEMINI_2_5_FLASH = "gemini-2.5-flash"
    GEMINI_2_5_FLASH_LITE = "gemini-2.5-flash-lite"
    GEMINI_2_5_PRO = "gemini-2.5-pro"
    GEMINI_3_PRO = "gemini-3-pro-preview"

    # Aliases for convenience
    FLASH = "gemini-2.5-flash"
    LITE = "gemini-2.5-flash-lite"
    PRO = "gemini-2.5-pro"


DEFAULT_MODEL = GeminiModelName.GEMINI_2_5_FLASH

GEMINI_MODELS = [m.value for m in GeminiModelName]

# Environment variables checked for a credential, in order
API_KEY_ENV_VARS = {
    ProviderType.GEMINI: ("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    ProviderType.ANTHROPIC: ("ANTHROPIC_API_KEY",),
}


class LLMConfig(BaseModel):
    """Main configuration for the generative text service."""

    # Provider selection
    provider: ProviderType = Field(
        default=ProviderType.GEMINI,
        description="LLM provider to use (gemini or anthropic)",
    )

    # API Configuration
    api_key: Optional[SecretStr] = Field(
        default=None,
        description="API key. If not set, reads from environment variable",
    )
    api_base_url: Optional[str] = Field(
        default=None,
        description="Custom API base URL (Anthropic only, for proxies)",
    )
    timeout_seconds: float = Field(default=120.0, ge=1.0, le=600.0)

    default_model: str = DEFAULT_MODEL.value

    # Rate limiting
    requests_per_minute: Optional[int] = Field(default=60, ge=1)

    # Logging
    log_requests: bool = False
    log_responses: bool = False

    def resolve_model(self, model: Optional[str] = None) -> str:
        """
        Pick the model to call.

        Unknown Gemini model names fall back to the configured default;
        other providers accept any name.
        """
        model = model or self.default_model
        if self.provider == ProviderType.GEMINI and model not in GEMINI_MODELS:
            return self.default_model if self.default_model in GEMINI_MODELS else DEFAULT_MODEL.value
        return model

    def get_api_key_value(self) -> Optional[str]:
        """Get the API key value as a plain string."""
        if self.api_key:
            return self.api_key.get_secret_value()
        return None
