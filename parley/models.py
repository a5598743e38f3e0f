"""Data model for conversations: participants, turns and routes."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional


TERMINATE = "TERMINATE"


class ParticipantKind(str, Enum):
    """Kinds of participants in a conversation."""
    HUMAN = "human"
    AGENT = "agent"
    COORDINATOR = "coordinator"

    @classmethod
    def _missing_(cls, value):
        aliases = {
            "assistant": cls.HUMAN,
            "human-proxy": cls.HUMAN,
            "manager": cls.COORDINATOR,
            "group-coordinator": cls.COORDINATOR,
        }
        if isinstance(value, str):
            return aliases.get(value.lower())
        return None


class InterruptPolicy(str, Enum):
    """Whether a participant needs confirmation before replying automatically."""
    ALWAYS = "ALWAYS"
    NEVER = "NEVER"


class TurnState(str, Enum):
    """Outcome of a transcript entry."""
    SUCCESS = "success"
    ERROR = "error"


class ConversationState(str, Enum):
    """State of a conversation run."""
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    FAILED = "failed"
    COMPLETED = "completed"


class StopReason(str, Enum):
    """Why a completed conversation stopped."""
    TERMINATED = "terminated"
    MAX_ROUNDS = "max_rounds"
    GROUP_ROUND_LIMIT = "group_round_limit"


DEFAULT_INTERRUPT = {
    ParticipantKind.HUMAN: InterruptPolicy.ALWAYS,
    ParticipantKind.AGENT: InterruptPolicy.NEVER,
    ParticipantKind.COORDINATOR: InterruptPolicy.NEVER,
}


@dataclass(frozen=True)
class ParticipantConfig:
    """Behavioral configuration of a single participant."""
    kind: ParticipantKind = ParticipantKind.AGENT
    role: Optional[str] = None
    interrupt: Optional[InterruptPolicy] = None
    round_limit: Optional[int] = None  # Coordinators only
    provider: Optional[Any] = None  # Dedicated generation backend
    model: Optional[str] = None

    def __post_init__(self):
        # Accept plain strings for the enum fields
        object.__setattr__(self, "kind", ParticipantKind(self.kind))
        if self.interrupt is not None:
            object.__setattr__(self, "interrupt", InterruptPolicy(self.interrupt))
        if self.round_limit is not None and self.round_limit < 1:
            raise ValueError(f"round_limit must be positive, got {self.round_limit}")

    @property
    def is_coordinator(self) -> bool:
        return self.kind == ParticipantKind.COORDINATOR

    def effective_interrupt(self, default: Optional[InterruptPolicy] = None) -> InterruptPolicy:
        """Resolve the interrupt policy: explicit, then global default, then by kind."""
        if self.interrupt is not None:
            return self.interrupt
        if default is not None:
            return InterruptPolicy(default)
        return DEFAULT_INTERRUPT[self.kind]


@dataclass(frozen=True)
class Turn:
    """One immutable transcript entry."""
    from_: str
    to: str
    content: str
    state: TurnState = TurnState.SUCCESS

    @property
    def is_success(self) -> bool:
        return self.state == TurnState.SUCCESS

    def to_dict(self) -> Dict[str, str]:
        """Convert the turn to its wire form."""
        return {
            "from": self.from_,
            "to": self.to,
            "content": self.content,
            "state": self.state.value,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Turn":
        """Build a turn from a mapping with ``from``/``to``/``content`` keys."""
        try:
            sender = data["from"] if "from" in data else data["from_"]
            return cls(
                from_=sender,
                to=data["to"],
                content=data["content"],
                state=TurnState(data.get("state", TurnState.SUCCESS)),
            )
        except KeyError as e:
            raise ValueError(f"Turn is missing field {e}") from None


@dataclass(frozen=True)
class Route:
    """A pending reply: who speaks next, to whom, and inside which group."""
    speaker: str
    recipient: str
    coordinator: Optional[str] = None

    @property
    def in_group(self) -> bool:
        return self.coordinator is not None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "speaker": self.speaker,
            "recipient": self.recipient,
            "coordinator": self.coordinator,
        }
