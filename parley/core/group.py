"""Speaker selection for coordinated group conversations."""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..config import settings
from ..errors import ConfigurationError
from ..models import Route
from ..providers.base import ChatMessage
from .context_builder import ContextBuilder
from .registry import ParticipantRegistry, RoutingGraph
from .transcript import Transcript

logger = logging.getLogger(__name__)

GenerateFn = Callable[[str, List[ChatMessage]], Awaitable[str]]


class GroupCoordinator:
    """
    Runs the sub-conversation behind a coordinator's candidate set.

    Each step asks the coordinator's backend which candidate speaks next
    (a "next role" query), then hands the chosen candidate back to the engine
    as an ordinary route addressed to the coordinator. The coordinator's
    round limit bounds how many candidate replies the group may produce.
    """

    def __init__(
        self,
        registry: ParticipantRegistry,
        graph: RoutingGraph,
        transcript: Transcript,
        context: ContextBuilder,
        generate: GenerateFn,
    ):
        self.registry = registry
        self.graph = graph
        self.transcript = transcript
        self.context = context
        self._generate = generate
        # Transcript index where the current run began
        self.run_start = 0

    def round_limit(self, coordinator: str) -> int:
        """Get the number of candidate replies a group may produce."""
        limit = self.registry.get(coordinator).round_limit
        return limit if limit is not None else settings.group_round_limit

    def rounds(self, coordinator: str) -> int:
        """Count the candidate replies addressed to the coordinator in the current run."""
        candidates = self.graph.candidates(coordinator)
        return len(self.transcript.addressed_to(coordinator, senders=candidates, since=self.run_start))

    def limit_reached(self, coordinator: str) -> bool:
        return self.rounds(coordinator) >= self.round_limit(coordinator)

    def previous_speaker(self, coordinator: str) -> Optional[str]:
        """Get the candidate that last spoke in the group, if any."""
        candidates = self.graph.candidates(coordinator)
        replies = self.transcript.addressed_to(coordinator, senders=candidates)
        return replies[-1].from_ if replies else None

    def history(self, coordinator: str):
        """Get every successful turn addressed to the group."""
        return self.transcript.addressed_to(coordinator)

    async def select_next(self, coordinator: str) -> Route:
        """
        Ask the coordinator which candidate speaks next.

        Raises:
            ConfigurationError: If the answer names no candidate of the group
            GenerationError: If the coordinator's backend fails
        """
        candidates = self.graph.candidates(coordinator)

        # Don't offer the last speaker the floor again
        offered = list(candidates)
        previous = self.previous_speaker(coordinator)
        if previous in offered and len(offered) > 1:
            offered.remove(previous)

        messages = self.context.build_selection_context(
            coordinator, offered, self.history(coordinator)
        )
        answer = await self._generate(coordinator, messages)
        choice = self.parse_choice(answer)

        if choice not in candidates:
            logger.error(f"Coordinator {coordinator} selected unknown speaker {choice!r}")
            raise ConfigurationError(
                f"Coordinator {coordinator!r} selected {choice!r}, which is not one of {list(candidates)}"
            )

        logger.debug(f"Coordinator {coordinator} selected {choice} (round {self.rounds(coordinator) + 1})")
        return Route(speaker=choice, recipient=coordinator, coordinator=coordinator)

    @staticmethod
    def parse_choice(answer: str) -> str:
        """Strip whitespace and a leading mention marker from a selection answer."""
        return answer.strip().lstrip("@").strip()

    def get_speaker_stats(self, coordinator: str) -> Dict[str, Dict[str, Any]]:
        """Get per-candidate statistics for a group."""
        replies = self.transcript.addressed_to(coordinator, senders=self.graph.candidates(coordinator))
        stats = {}
        for name in self.graph.candidates(coordinator):
            spoken = [i for i, turn in enumerate(replies) if turn.from_ == name]
            stats[name] = {
                "turns_taken": len(spoken),
                "last_spoke_at_round": spoken[-1] + 1 if spoken else -1,
            }
        return stats
