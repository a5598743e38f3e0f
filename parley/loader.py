"""Builds turn engines from declarative conversation definitions."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError
from .models import InterruptPolicy, ParticipantConfig, ParticipantKind, TurnState
from .core.engine import TurnEngine
from .providers.factory import get_provider

logger = logging.getLogger(__name__)


class ParticipantDefinition(BaseModel):
    """Configuration for one participant."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    kind: ParticipantKind = Field(
        default=ParticipantKind.AGENT,
        validation_alias=AliasChoices("kind", "type"),
    )
    role: Optional[str] = None
    interrupt: Optional[InterruptPolicy] = None
    round_limit: Optional[int] = Field(
        default=None,
        ge=1,
        validation_alias=AliasChoices("round_limit", "max_rounds", "maxRounds"),
    )
    provider: Optional[str] = None  # anthropic, openai, ollama
    model: Optional[str] = None

    @field_validator("kind", mode="before")
    @classmethod
    def _kind_alias(cls, value):
        if isinstance(value, str):
            return ParticipantKind._missing_(value) or value
        return value


class ChatDefinition(BaseModel):
    """A transcript entry to seed the conversation with."""
    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(validation_alias=AliasChoices("from", "from_"))
    to: str
    content: str
    state: TurnState = TurnState.SUCCESS


class ConversationDefinition(BaseModel):
    """A complete conversation: routing graph, participants and limits."""
    nodes: Dict[str, Union[str, List[str]]]
    config: Dict[str, ParticipantDefinition] = Field(..., min_length=1)
    interrupt: Optional[InterruptPolicy] = None
    max_rounds: Optional[int] = Field(
        default=None,
        ge=1,
        validation_alias=AliasChoices("max_rounds", "maxRounds"),
    )
    chats: List[ChatDefinition] = Field(default_factory=list)


def parse_conversation(source: Union[Mapping[str, Any], str, Path]) -> ConversationDefinition:
    """
    Validate a conversation definition.

    Args:
        source: A mapping, or a path to a JSON file holding one

    Raises:
        ConfigurationError: If the definition is unreadable or invalid
    """
    if isinstance(source, (str, Path)):
        path = Path(source)
        try:
            source = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot read conversation file {path}: {e}") from e

    try:
        return ConversationDefinition.model_validate(source)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid conversation definition: {e}") from e


def load_conversation(
    source: Union[Mapping[str, Any], str, Path, ConversationDefinition],
    provider: Optional[Any] = None,
) -> TurnEngine:
    """Build a ready-to-start engine from a conversation definition."""
    definition = source if isinstance(source, ConversationDefinition) else parse_conversation(source)

    config = {}
    for name, participant in definition.config.items():
        try:
            backend = get_provider(participant.provider) if participant.provider else None
        except ValueError as e:
            raise ConfigurationError(f"Participant {name!r}: {e}") from e
        config[name] = ParticipantConfig(
            kind=participant.kind,
            role=participant.role,
            interrupt=participant.interrupt,
            round_limit=participant.round_limit,
            provider=backend,
            model=participant.model,
        )

    engine = TurnEngine(
        nodes=definition.nodes,
        config=config,
        provider=provider,
        interrupt=definition.interrupt,
        max_rounds=definition.max_rounds,
        chats=[
            {"from": chat.from_, "to": chat.to, "content": chat.content, "state": chat.state.value}
            for chat in definition.chats
        ],
    )
    logger.info(f"Loaded conversation with {len(config)} participants")
    return engine
