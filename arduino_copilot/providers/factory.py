# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Provider factory keyed on ProviderType.

Builds backends lazily from the current settings and keeps one instance per
type. An instance is rebuilt when its connection settings change.
"""

import logging
from typing import Callable, Dict, List, Optional, Tuple, Type

import httpx

from arduino_copilot.config import CompletionSettings, ProviderSettings, ProviderType
from arduino_copilot.errors import ConfigurationError
from arduino_copilot.providers.anthropic import AnthropicProvider
from arduino_copilot.providers.base import AIProvider, BaseAIProvider
from arduino_copilot.providers.ollama import OllamaProvider
from arduino_copilot.providers.openai import OpenAIProvider

logger = logging.getLogger(__name__)

ProviderBuilder = Callable[[ProviderSettings, CompletionSettings], AIProvider]

BUILTIN_PROVIDERS: Dict[ProviderType, Type[BaseAIProvider]] = {
    ProviderType.OPENAI: OpenAIProvider,
    ProviderType.ANTHROPIC: AnthropicProvider,
    ProviderType.OLLAMA: OllamaProvider,
}


class ProviderFactory:
    """Creates and caches AI providers.

    Supports:
    - Built-in HTTP backends for every ProviderType
    - Builder overrides per type (custom backends, test doubles)
    - A shared httpx transport for all built-in backends
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        """Initialize the factory.

        Args:
            transport: Optional httpx transport handed to built-in backends
        """
        self._transport = transport
        self._builders: Dict[ProviderType, ProviderBuilder] = {}
        self._providers: Dict[ProviderType, Tuple[ProviderSettings, AIProvider]] = {}

    def register_builder(self, provider_type: ProviderType, builder: ProviderBuilder) -> None:
        """Override how a provider type is constructed.

        Args:
            provider_type: Backend to override
            builder: Called with (provider settings, completion settings)
        """
        self._builders[ProviderType(provider_type)] = builder
        self._providers.pop(ProviderType(provider_type), None)
        logger.debug(f"Registered provider builder: {provider_type.value}")

    def get_provider(
        self,
        settings: CompletionSettings,
        provider_type: Optional[ProviderType] = None,
    ) -> AIProvider:
        """Get the provider for a type (the active one by default).

        Raises:
            ConfigurationError: If the provider cannot be constructed
        """
        provider_type = ProviderType(provider_type or settings.provider)
        provider_settings = settings.provider_settings(provider_type)

        cached = self._providers.get(provider_type)
        if cached is not None and cached[0] == provider_settings:
            return cached[1]

        try:
            provider = self._build(provider_type, provider_settings, settings)
        except Exception as e:
            raise ConfigurationError(
                f"Failed to create provider {provider_type.value}: {e}"
            ) from e

        self._providers[provider_type] = (provider_settings, provider)
        logger.info(f"Created provider: {provider.name}")
        if not provider.is_available():
            logger.warning(f"Provider {provider_type.value} is not available")
        return provider

    def _build(
        self,
        provider_type: ProviderType,
        provider_settings: ProviderSettings,
        settings: CompletionSettings,
    ) -> AIProvider:
        builder = self._builders.get(provider_type)
        if builder is not None:
            return builder(provider_settings, settings)

        provider_class = BUILTIN_PROVIDERS.get(provider_type)
        if provider_class is None:
            raise ConfigurationError(f"Unknown provider type: {provider_type}")
        return provider_class(
            provider_settings,
            timeout=settings.request_timeout_s,
            transport=self._transport,
        )

    def list_providers(self) -> List[ProviderType]:
        """All provider types this factory can build."""
        return sorted(set(BUILTIN_PROVIDERS) | set(self._builders), key=lambda t: t.value)

    async def aclose_all(self) -> None:
        """Close every cached provider."""
        logger.info("Shutting down all AI providers")
        providers = [p for _, p in self._providers.values()]
        self._providers.clear()
        for provider in providers:
            try:
                await provider.aclose()
            except Exception as e:
                logger.warning(f"Error closing provider {provider.name}: {e}")
