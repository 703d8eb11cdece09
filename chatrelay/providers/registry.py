"""Provider registry: the closed set of model vendors a chat can use."""
from typing import Dict, Iterable, List

from chatrelay.config import Settings
from chatrelay.core.errors import UnsupportedProviderError
from chatrelay.providers.anthropic import AnthropicAdapter
from chatrelay.providers.base import ProviderAdapter
from chatrelay.providers.gemini import GeminiAdapter
from chatrelay.providers.openai_compatible import MistralAdapter, OpenAIAdapter


class ProviderRegistry:
    """
    Registry of provider adapters.

    Read-only after construction; shared by all requests.
    """

    def __init__(self, adapters: Iterable[ProviderAdapter]):
        """Initialize registry from adapter instances."""
        self._adapters: Dict[str, ProviderAdapter] = {}
        for adapter in adapters:
            if adapter.provider_id in self._adapters:
                raise ValueError(f"Duplicate provider '{adapter.provider_id}'")
            self._adapters[adapter.provider_id] = adapter

    def resolve(self, provider_id: str) -> ProviderAdapter:
        """
        Look up the adapter for a provider id.

        Raises:
            UnsupportedProviderError: If the id is not registered
        """
        adapter = self._adapters.get(provider_id)
        if adapter is None:
            raise UnsupportedProviderError(provider_id)
        return adapter

    def __contains__(self, provider_id: str) -> bool:
        return provider_id in self._adapters

    def providers(self) -> List[Dict[str, str]]:
        """Describe registered providers for the provider listing endpoint."""
        return [
            {"id": adapter.provider_id, "name": adapter.display_name, "model": adapter.model}
            for adapter in self._adapters.values()
        ]


def build_registry(settings: Settings) -> ProviderRegistry:
    """
    Create the registry for the four supported vendors.

    Adding a vendor means adding one adapter class and one entry here.
    """
    common = {"max_tokens": settings.PROVIDER_MAX_TOKENS, "timeout": settings.PROVIDER_TIMEOUT}
    return ProviderRegistry([
        OpenAIAdapter(
            settings.OPENAI_API_KEY, settings.OPENAI_MODEL, settings.OPENAI_BASE_URL, **common
        ),
        GeminiAdapter(
            settings.GEMINI_API_KEY,
            settings.GEMINI_MODEL,
            settings.GEMINI_BASE_URL,
            temperature=settings.GEMINI_TEMPERATURE,
            **common,
        ),
        AnthropicAdapter(
            settings.ANTHROPIC_API_KEY,
            settings.ANTHROPIC_MODEL,
            settings.ANTHROPIC_BASE_URL,
            api_version=settings.ANTHROPIC_VERSION,
            **common,
        ),
        MistralAdapter(
            settings.MISTRAL_API_KEY, settings.MISTRAL_MODEL, settings.MISTRAL_BASE_URL, **common
        ),
    ])
