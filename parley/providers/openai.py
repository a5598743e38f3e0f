"""OpenAI backend."""

import logging
from typing import List, Optional

from .base import BaseProvider, ProviderResponse, ChatMessage
from ..config import settings

logger = logging.getLogger(__name__)


class OpenAIProvider(BaseProvider):
    """Generation backend for OpenAI chat models."""

    provider_name = "openai"
    default_model = "gpt-4o"
    available_models = [
        "gpt-4o",
        "gpt-4o-mini",
        "gpt-4-turbo",
        "gpt-4",
    ]

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        super().__init__(api_key or settings.openai_api_key, **kwargs)
        self._client = None

    @property
    def client(self):
        """Lazy-load the OpenAI client."""
        if self._client is None:
            from openai import AsyncOpenAI
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    def is_available(self) -> bool:
        """Check if OpenAI is configured."""
        return bool(self.api_key)

    def format_messages(self, messages: List[ChatMessage]):
        """Keep system entries inline and forward participant names."""
        formatted = []
        for msg in messages:
            if msg.role == "system" and not msg.content:
                continue
            entry = {"role": msg.role, "content": msg.content}
            if msg.name and msg.role != "system":
                entry["name"] = _safe_name(msg.name)
            formatted.append(entry)
        return formatted

    async def generate(
        self,
        messages: List[ChatMessage],
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        **kwargs,
    ) -> ProviderResponse:
        """Generate a complete response from OpenAI."""
        model = self.get_model(model)

        response = await self.client.chat.completions.create(
            model=model,
            messages=self.format_messages(messages),
            max_tokens=max_tokens or settings.default_max_tokens,
            temperature=settings.default_temperature if temperature is None else temperature,
            **kwargs,
        )

        choice = response.choices[0]
        content = choice.message.content or ""

        return ProviderResponse(
            content=content,
            input_tokens=response.usage.prompt_tokens,
            output_tokens=response.usage.completion_tokens,
            model=model,
            stop_reason=choice.finish_reason,
            metadata={
                "id": response.id,
            },
        )


def _safe_name(name: str) -> str:
    # The API only accepts [a-zA-Z0-9_-] in message names
    cleaned = "".join(c if c.isascii() and (c.isalnum() or c in "_-") else "_" for c in name)
    return cleaned[:64] or "participant"
