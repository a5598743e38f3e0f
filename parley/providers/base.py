"""Generation gateway interface shared by all backends."""

import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Tuple, Union, runtime_checkable


@dataclass
class ChatMessage:
    """A message in a generation request."""
    role: str  # "user", "assistant", "system"
    content: str
    name: Optional[str] = None  # Participant that authored the entry


@dataclass
class ProviderResponse:
    """Complete response from a backend."""
    content: str
    input_tokens: int = 0
    output_tokens: int = 0
    model: Optional[str] = None
    stop_reason: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@runtime_checkable
class GenerationGateway(Protocol):
    """Anything the turn engine can ask for a participant's next utterance."""

    async def generate(
        self,
        messages: List[ChatMessage],
        model: Optional[str] = None,
        **kwargs,
    ) -> ProviderResponse: ...


class BaseProvider(ABC):
    """Abstract base class for generation backends."""

    # Provider identification
    provider_name: str = "base"

    default_model: str = ""
    available_models: List[str] = []

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        self.api_key = api_key
        self.kwargs = kwargs

    @abstractmethod
    async def generate(
        self,
        messages: List[ChatMessage],
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        **kwargs,
    ) -> ProviderResponse:
        """Generate a complete response."""
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this provider is configured and available."""
        pass

    def get_model(self, model: Optional[str] = None) -> str:
        """Get the model to use, falling back to default."""
        if model and (not self.available_models or model in self.available_models):
            return model
        return self.default_model

    def split_system(self, messages: List[ChatMessage]) -> Tuple[str, List[ChatMessage]]:
        """Separate leading system entries from the conversational messages."""
        system_parts = [msg.content for msg in messages if msg.role == "system" and msg.content]
        rest = [msg for msg in messages if msg.role != "system"]
        return "\n\n".join(system_parts), rest

    def format_messages(self, messages: List[ChatMessage]) -> List[Dict[str, str]]:
        """Format messages for the provider's API."""
        return [
            {"role": msg.role, "content": msg.content}
            for msg in messages
            if msg.role != "system" or msg.content
        ]


GenerateFn = Callable[[List[ChatMessage]], Union[str, Awaitable[str]]]


class FunctionProvider(BaseProvider):
    """
    Adapts a plain callable into a generation backend.

    The callable receives the list of ``ChatMessage`` objects and returns the
    generated text, either directly or as an awaitable.
    """

    provider_name = "function"

    def __init__(self, fn: GenerateFn, name: Optional[str] = None):
        super().__init__(None)
        self.fn = fn
        if name:
            self.provider_name = name

    def is_available(self) -> bool:
        return True

    async def generate(
        self,
        messages: List[ChatMessage],
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        **kwargs,
    ) -> ProviderResponse:
        """Call the wrapped function and wrap its text."""
        result = self.fn(messages)
        if inspect.isawaitable(result):
            result = await result
        return ProviderResponse(content=result, model=model)
