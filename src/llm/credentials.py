"""Credential lookup and lazily-built provider clients."""

import asyncio
import hashlib
import logging
import os
from typing import Callable, Optional

from .config import API_KEY_ENV_VARS, LLMConfig
from .providers.base import LLMProvider, ProviderType
from .providers.factory import create_llm_provider

logger = logging.getLogger(__name__)


class EnvSecretStore:
    """
    Read-only credential store.

    Returns the key configured on LLMConfig, otherwise the first matching
    environment variable for the configured provider.
    """

    def __init__(self, config: Optional[LLMConfig] = None):
        self.config = config or LLMConfig()

    def get(self) -> Optional[str]:
        configured = self.config.get_api_key_value()
        if configured:
            return configured

        for env_var in API_KEY_ENV_VARS.get(self.config.provider, ()):
            value = os.environ.get(env_var)
            if value:
                return value
        return None


def _digest(credential: str) -> str:
    return hashlib.sha256(credential.encode("utf-8")).hexdigest()


class ClientFactory:
    """
    Builds the provider client on first use and rebuilds it when the
    credential changes.

    Callers always go through ``get``; a client obtained before a credential
    change must not be reused once ``invalidate`` has run.

    Usage:
        factory = ClientFactory(LLMConfig())
        provider = await factory.get(api_key)
        ...
        await factory.invalidate()
    """

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        builder: Callable[..., LLMProvider] = create_llm_provider,
    ):
        self.config = config or LLMConfig()
        self._builder = builder
        self._provider: Optional[LLMProvider] = None
        self._credential_digest: Optional[str] = None
        self._lock = asyncio.Lock()

    @property
    def has_client(self) -> bool:
        return self._provider is not None

    async def get(self, credential: str) -> LLMProvider:
        """Return a started provider bound to ``credential``."""
        digest = _digest(credential)
        async with self._lock:
            if self._provider is not None and self._credential_digest == digest:
                return self._provider

            if self._provider is not None:
                logger.info("Credential changed, rebuilding provider client")
                await self._close()

            options = {
                "timeout_seconds": self.config.timeout_seconds,
                "requests_per_minute": self.config.requests_per_minute,
                "log_requests": self.config.log_requests,
                "log_responses": self.config.log_responses,
            }
            if self.config.provider == ProviderType.ANTHROPIC and self.config.api_base_url:
                options["api_base_url"] = self.config.api_base_url

            provider = self._builder(
                self.config.provider,
                api_key=credential,
                default_model=self.config.default_model,
                **options,
            )
            await provider.start()
            self._provider = provider
            self._credential_digest = digest
            return provider

    async def invalidate(self) -> None:
        """Drop the cached client so the next ``get`` builds a new one."""
        async with self._lock:
            await self._close()

    async def _close(self) -> None:
        if self._provider is not None:
            await self._provider.stop()
        self._provider = None
        self._credential_digest = None
