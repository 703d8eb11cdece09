"""Model provider adapters and the registry that selects between them."""
from chatrelay.providers.base import NormalizedModelResult, ProviderAdapter
from chatrelay.providers.registry import ProviderRegistry, build_registry

__all__ = ["NormalizedModelResult", "ProviderAdapter", "ProviderRegistry", "build_registry"]
