"""Anthropic Claude backend."""

import logging
from typing import List, Optional

from .base import BaseProvider, ProviderResponse, ChatMessage
from ..config import settings

logger = logging.getLogger(__name__)


class AnthropicProvider(BaseProvider):
    """Generation backend for Anthropic Claude models."""

    provider_name = "anthropic"
    default_model = "claude-sonnet-4-20250514"
    available_models = [
        "claude-opus-4-20250514",
        "claude-sonnet-4-20250514",
        "claude-3-5-sonnet-20241022",
        "claude-3-5-haiku-20241022",
    ]

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        super().__init__(api_key or settings.anthropic_api_key, **kwargs)
        self._client = None

    @property
    def client(self):
        """Lazy-load the Anthropic client."""
        if self._client is None:
            import anthropic
            self._client = anthropic.AsyncAnthropic(api_key=self.api_key)
        return self._client

    def is_available(self) -> bool:
        """Check if Anthropic is configured."""
        return bool(self.api_key)

    def format_messages(self, messages: List[ChatMessage]):
        """Claude takes the system prompt separately and needs a leading user turn."""
        formatted = [
            {"role": msg.role, "content": msg.content}
            for msg in messages
            if msg.role != "system"
        ]
        if formatted and formatted[0]["role"] != "user":
            formatted.insert(0, {"role": "user", "content": "(conversation continues)"})
        return formatted

    async def generate(
        self,
        messages: List[ChatMessage],
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        **kwargs,
    ) -> ProviderResponse:
        """Generate a complete response from Claude."""
        model = self.get_model(model)
        system, _ = self.split_system(messages)

        response = await self.client.messages.create(
            model=model,
            max_tokens=max_tokens or settings.default_max_tokens,
            temperature=settings.default_temperature if temperature is None else temperature,
            system=system,
            messages=self.format_messages(messages),
            **kwargs,
        )

        content = ""
        for block in response.content:
            if hasattr(block, "text"):
                content += block.text

        logger.debug(f"Claude {model} returned {len(content)} chars")
        return ProviderResponse(
            content=content,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            model=model,
            stop_reason=response.stop_reason,
            metadata={
                "id": response.id,
            },
        )
