# Generation backends
from .base import BaseProvider, ChatMessage, FunctionProvider, GenerationGateway, ProviderResponse
from .anthropic import AnthropicProvider
from .openai import OpenAIProvider
from .ollama import OllamaProvider
from .factory import get_provider, ProviderType

__all__ = [
    "BaseProvider",
    "ChatMessage",
    "FunctionProvider",
    "GenerationGateway",
    "ProviderResponse",
    "AnthropicProvider",
    "OpenAIProvider",
    "OllamaProvider",
    "get_provider",
    "ProviderType",
]
