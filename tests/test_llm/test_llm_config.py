"""Tests for LLM configuration models."""

from pydantic import SecretStr

from src.llm.config import (
    API_KEY_ENV_VARS,
    DEFAULT_MODEL,
    GEMINI_MODELS,
    GeminiModelName,
    LLMConfig,
)
from src.llm.providers.base import ProviderType


class TestGeminiModelName:
    """Tests for GeminiModelName enum."""

    def test_aliases(self):
        """Aliases resolve to the canonical members."""
        assert GeminiModelName.FLASH == GeminiModelName.GEMINI_2_5_FLASH
        assert GeminiModelName.PRO == GeminiModelName.GEMINI_2_5_PRO

    def test_model_list_has_no_duplicates(self):
        assert len(GEMINI_MODELS) == len(set(GEMINI_MODELS)) == 4
        assert DEFAULT_MODEL.value in GEMINI_MODELS


class TestLLMConfig:
    """Tests for LLMConfig."""

    def test_defaults(self):
        config = LLMConfig()
        assert config.provider == ProviderType.GEMINI
        assert config.default_model == "gemini-2.5-flash"
        assert config.timeout_seconds == 120.0
        assert config.get_api_key_value() is None

    def test_api_key_is_secret(self):
        config = LLMConfig(api_key=SecretStr("sk-test"))
        assert "sk-test" not in repr(config)
        assert config.get_api_key_value() == "sk-test"

    def test_resolve_known_model(self):
        assert LLMConfig().resolve_model("gemini-2.5-pro") == "gemini-2.5-pro"

    def test_resolve_falls_back_to_default(self):
        """Unknown Gemini models fall back to the configured default."""
        config = LLMConfig(default_model="gemini-2.5-flash-lite")
        assert config.resolve_model("gpt-4") == "gemini-2.5-flash-lite"
        assert config.resolve_model(None) == "gemini-2.5-flash-lite"

    def test_resolve_with_bad_default(self):
        config = LLMConfig(default_model="not-a-model")
        assert config.resolve_model("also-bad") == DEFAULT_MODEL.value

    def test_other_providers_accept_any_model(self):
        config = LLMConfig(provider=ProviderType.ANTHROPIC, default_model="claude-sonnet-4-20250514")
        assert config.resolve_model("claude-3-5-haiku-20241022") == "claude-3-5-haiku-20241022"


class TestApiKeyEnvVars:
    def test_gemini_lookup_order(self):
        assert API_KEY_ENV_VARS[ProviderType.GEMINI] == ("GEMINI_API_KEY", "GOOGLE_API_KEY")

    def test_anthropic(self):
        assert API_KEY_ENV_VARS[ProviderType.ANTHROPIC] == ("ANTHROPIC_API_KEY",)
