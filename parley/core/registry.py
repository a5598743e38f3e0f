"""Participant registry and routing graph."""

import logging
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

from ..errors import ConfigurationError
from ..models import ParticipantConfig, ParticipantKind

logger = logging.getLogger(__name__)

RouteTarget = Union[str, Sequence[str]]


class ParticipantRegistry:
    """Lookup of participant configurations by identifier."""

    def __init__(self, config: Mapping[str, Union[ParticipantConfig, Mapping]]):
        self._participants: Dict[str, ParticipantConfig] = {}
        for name, participant in config.items():
            if not isinstance(participant, ParticipantConfig):
                try:
                    participant = ParticipantConfig(**participant)
                except (TypeError, ValueError) as e:
                    raise ConfigurationError(f"Invalid config for participant {name!r}: {e}") from e
            self._participants[name] = participant

    def __contains__(self, name: str) -> bool:
        return name in self._participants

    def __len__(self) -> int:
        return len(self._participants)

    def names(self) -> List[str]:
        return list(self._participants)

    def get(self, name: str) -> ParticipantConfig:
        """Get a participant's configuration."""
        try:
            return self._participants[name]
        except KeyError:
            raise ConfigurationError(f"Unknown participant: {name!r}") from None

    def require(self, *names: str):
        """Raise if any of the names is not registered."""
        for name in names:
            if name not in self._participants:
                raise ConfigurationError(f"Unknown participant: {name!r}")


class RoutingGraph:
    """
    Who may address whom.

    Each entry maps a participant to either one other participant or a
    candidate set. Candidate sets are only legal on coordinators, and every
    coordinator needs one.
    """

    def __init__(self, nodes: Mapping[str, RouteTarget], registry: ParticipantRegistry):
        self._edges: Dict[str, Union[str, Tuple[str, ...]]] = {}
        for source, target in nodes.items():
            if isinstance(target, str):
                self._edges[source] = target
            else:
                self._edges[source] = tuple(dict.fromkeys(target))
        self.validate(registry)

    def validate(self, registry: ParticipantRegistry):
        """Check every referenced identifier and the coordinator entries."""
        for source, target in self._edges.items():
            referenced = (target,) if isinstance(target, str) else target
            registry.require(source, *referenced)

            config = registry.get(source)
            if isinstance(target, tuple):
                if not config.is_coordinator:
                    raise ConfigurationError(
                        f"{source!r} routes to a candidate set but is a {config.kind.value}, not a coordinator"
                    )
                if not target:
                    raise ConfigurationError(f"Coordinator {source!r} has an empty candidate set")
                if source in target:
                    raise ConfigurationError(f"Coordinator {source!r} lists itself as a candidate")

        for name in registry.names():
            if registry.get(name).kind == ParticipantKind.COORDINATOR and not self.is_group(name):
                raise ConfigurationError(f"Coordinator {name!r} has no candidate set")

    def target(self, source: str) -> Optional[Union[str, Tuple[str, ...]]]:
        return self._edges.get(source)

    def is_group(self, source: str) -> bool:
        return isinstance(self._edges.get(source), tuple)

    def candidates(self, coordinator: str) -> Tuple[str, ...]:
        """Get the candidate set of a coordinator."""
        target = self._edges.get(coordinator)
        if not isinstance(target, tuple):
            raise ConfigurationError(f"{coordinator!r} has no candidate set")
        return target
