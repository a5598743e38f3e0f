"""Ollama backend for local models."""

import logging
from typing import List, Optional

import httpx

from .base import BaseProvider, ProviderResponse, ChatMessage
from ..config import settings

logger = logging.getLogger(__name__)


class OllamaProvider(BaseProvider):
    """Generation backend for local Ollama models."""

    provider_name = "ollama"
    default_model = "llama3.1:8b"
    # Any locally pulled model is accepted
    available_models: List[str] = []

    def __init__(self, base_url: Optional[str] = None, timeout: float = 120.0, **kwargs):
        super().__init__(None, **kwargs)
        self.base_url = (base_url or settings.ollama_base_url).rstrip("/")
        self.timeout = timeout
        self._available = None

    def is_available(self) -> bool:
        """Check if Ollama is running."""
        if self._available is not None:
            return self._available
        try:
            response = httpx.get(f"{self.base_url}/api/tags", timeout=2.0)
            self._available = response.status_code == 200
        except httpx.HTTPError:
            self._available = False
        return self._available

    async def list_models(self) -> List[str]:
        """Get the models actually pulled into the local Ollama."""
        async with httpx.AsyncClient() as client:
            response = await client.get(f"{self.base_url}/api/tags", timeout=5.0)
            response.raise_for_status()
            data = response.json()
        return [model["name"] for model in data.get("models", [])]

    async def generate(
        self,
        messages: List[ChatMessage],
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        **kwargs,
    ) -> ProviderResponse:
        """Generate a complete response from Ollama."""
        model = self.get_model(model)

        async with httpx.AsyncClient() as client:
            response = await client.post(
                f"{self.base_url}/api/chat",
                json={
                    "model": model,
                    "messages": self.format_messages(messages),
                    "stream": False,
                    "options": {
                        "num_predict": max_tokens or settings.default_max_tokens,
                        "temperature": settings.default_temperature if temperature is None else temperature,
                    },
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()

        content = data.get("message", {}).get("content", "")

        return ProviderResponse(
            content=content,
            input_tokens=data.get("prompt_eval_count", 0),
            output_tokens=data.get("eval_count", 0),
            model=model,
            stop_reason=data.get("done_reason"),
            metadata={
                "total_duration": data.get("total_duration"),
                "eval_duration": data.get("eval_duration"),
            },
        )
