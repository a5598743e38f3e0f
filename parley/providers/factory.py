"""Provider factory for creating backend instances."""

from enum import Enum
from typing import Dict, List

from .base import BaseProvider
from .anthropic import AnthropicProvider
from .openai import OpenAIProvider
from .ollama import OllamaProvider


class ProviderType(str, Enum):
    """Supported provider types."""
    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    OLLAMA = "ollama"


_PROVIDER_CLASSES = {
    ProviderType.ANTHROPIC: AnthropicProvider,
    ProviderType.OPENAI: OpenAIProvider,
    ProviderType.OLLAMA: OllamaProvider,
}

# Provider registry
_providers: Dict[ProviderType, BaseProvider] = {}


def get_provider(provider_type: ProviderType | str) -> BaseProvider:
    """
    Get or create a provider instance.

    Args:
        provider_type: The type of provider to get

    Returns:
        A provider instance

    Raises:
        ValueError: If the provider type is unknown
    """
    if isinstance(provider_type, str):
        try:
            provider_type = ProviderType(provider_type.lower())
        except ValueError:
            raise ValueError(f"Unknown provider type: {provider_type}")

    if provider_type not in _providers:
        _providers[provider_type] = _PROVIDER_CLASSES[provider_type]()

    return _providers[provider_type]


def get_available_providers() -> List[ProviderType]:
    """Get list of configured and available providers."""
    return [
        provider_type
        for provider_type in ProviderType
        if get_provider(provider_type).is_available()
    ]
