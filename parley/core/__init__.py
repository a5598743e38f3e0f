# Conversation core
from .engine import TurnEngine
from .events import ChatEvent, EventChannel
from .group import GroupCoordinator
from .registry import ParticipantRegistry, RoutingGraph
from .transcript import Transcript

__all__ = [
    "TurnEngine",
    "ChatEvent",
    "EventChannel",
    "GroupCoordinator",
    "ParticipantRegistry",
    "RoutingGraph",
    "Transcript",
]
