"""Turn-based conversations between agents and humans."""

from .config import configure_logging, get_settings, settings
from .core import ChatEvent, TurnEngine
from .errors import ConfigurationError, GenerationError, ParleyError, ProtocolError
from .loader import load_conversation
from .models import (
    TERMINATE,
    ConversationState,
    InterruptPolicy,
    ParticipantConfig,
    ParticipantKind,
    Route,
    StopReason,
    Turn,
    TurnState,
)
from .providers import ChatMessage, FunctionProvider, ProviderResponse

__version__ = "0.1.0"

__all__ = [
    "TERMINATE",
    "ChatEvent",
    "ChatMessage",
    "ConfigurationError",
    "ConversationState",
    "FunctionProvider",
    "GenerationError",
    "InterruptPolicy",
    "ParleyError",
    "ParticipantConfig",
    "ParticipantKind",
    "ProtocolError",
    "ProviderResponse",
    "Route",
    "StopReason",
    "Turn",
    "TurnEngine",
    "TurnState",
    "configure_logging",
    "get_settings",
    "load_conversation",
    "settings",
]
