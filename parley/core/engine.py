"""Turn engine: schedules replies, pauses for input and detects the end."""

import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from ..config import settings
from ..errors import ConfigurationError, GenerationError, ProtocolError
from ..models import (
    TERMINATE,
    ConversationState,
    InterruptPolicy,
    ParticipantConfig,
    Route,
    StopReason,
    Turn,
    TurnState,
)
from ..providers.base import ChatMessage
from ..providers.factory import get_provider
from .context_builder import ContextBuilder
from .events import ChatEvent, EventChannel, Handler
from .group import GroupCoordinator
from .registry import ParticipantRegistry, RouteTarget, RoutingGraph
from .transcript import Transcript

logger = logging.getLogger(__name__)

TurnLike = Union[Turn, Mapping[str, Any]]


class TurnEngine:
    """
    Runs one turn-based conversation between registered participants.

    ``start`` records a seed turn and lets participants reply to each other
    until a reply is exactly ``TERMINATE``, a round limit is reached, or a
    participant whose interrupt policy is ALWAYS is about to reply on its own.
    In that last case the engine pauses and waits for ``resume``, which either
    records the human's feedback as that participant's turn or lets the
    backend answer for it.

    Only one step runs at a time. Calls that would interleave with a running
    step are rejected with ``ProtocolError``.
    """

    def __init__(
        self,
        nodes: Mapping[str, RouteTarget],
        config: Mapping[str, Union[ParticipantConfig, Mapping]],
        provider: Optional[Any] = None,
        interrupt: Optional[Union[InterruptPolicy, str]] = None,
        max_rounds: Optional[int] = None,
        chats: Optional[Iterable[TurnLike]] = None,
    ):
        self.registry = ParticipantRegistry(config)
        self.graph = RoutingGraph(nodes, self.registry)
        try:
            self.default_interrupt = InterruptPolicy(interrupt) if interrupt is not None else None
        except ValueError:
            raise ConfigurationError(f"Unknown interrupt policy: {interrupt!r}") from None

        self.max_rounds = max_rounds if max_rounds is not None else settings.max_rounds
        if self.max_rounds < 1:
            raise ConfigurationError(f"max_rounds must be positive, got {self.max_rounds}")

        self._provider = provider
        self._transcript = Transcript(self._coerce(chat) for chat in chats or [])
        for turn in self._transcript:
            self.registry.require(turn.from_, turn.to)

        self.events = EventChannel(self)
        self.context = ContextBuilder(self.registry)
        self.group = GroupCoordinator(
            self.registry, self.graph, self._transcript, self.context, self._generate
        )

        self.state = ConversationState.IDLE
        self.stop_reason: Optional[StopReason] = None
        self._pending: Optional[Route] = None
        self._failed_route: Optional[Route] = None
        self._retryable = False

    # ------------------------------------------------------------------
    # Public surface

    @property
    def provider(self):
        """Get the default backend, resolving it from settings on first use."""
        if self._provider is None:
            self._provider = get_provider(settings.default_provider)
        return self._provider

    @property
    def transcript(self) -> Tuple[Turn, ...]:
        return self._transcript.turns

    @property
    def chats(self) -> List[Dict[str, str]]:
        """The transcript as a list of plain dicts."""
        return self._transcript.to_dicts()

    @property
    def pending(self) -> Optional[Route]:
        """The reply waiting for ``resume`` while paused."""
        return self._pending

    def on(self, event: Union[ChatEvent, str], handler: Handler) -> Callable[[], None]:
        """Subscribe to ``message`` or ``interrupt`` events."""
        return self.events.on(event, handler)

    def off(self, event: Union[ChatEvent, str], handler: Handler):
        self.events.off(event, handler)

    async def start(self, seed: TurnLike) -> "TurnEngine":
        """
        Record a seed turn and run the conversation from it.

        The reply to the seed is always generated; interrupt policies only
        gate the replies after it.

        Raises:
            ProtocolError: If the conversation is running or paused
            ConfigurationError: If the seed names unknown participants
        """
        if self.state in (ConversationState.RUNNING, ConversationState.PAUSED):
            raise ProtocolError(f"Cannot start a conversation that is {self.state.value}")

        turn = self._coerce(seed)
        self.registry.require(turn.from_, turn.to)

        if self.state != ConversationState.IDLE:
            # Round caps restart with each run; pre-seeded chats count toward the first
            self.group.run_start = len(self._transcript)

        self.state = ConversationState.RUNNING
        self.stop_reason = None
        self._failed_route = None
        self._retryable = False
        logger.info(f"Conversation started: {turn.from_} -> {turn.to}")

        await self._guard(self._begin(turn))
        return self

    async def _begin(self, seed: Turn):
        await self._append(Turn(from_=seed.from_, to=seed.to, content=seed.content))
        await self._run(gated=False)

    async def resume(self, feedback: Optional[str] = None) -> "TurnEngine":
        """
        Continue a paused conversation.

        With ``feedback``, it is recorded verbatim as the pending speaker's
        turn and no backend is called. Without it, the pending speaker's
        backend produces the turn.

        Raises:
            ProtocolError: If the conversation is not paused
        """
        if self.state != ConversationState.PAUSED or self._pending is None:
            raise ProtocolError(f"Cannot resume a conversation that is {self.state.value}")

        route = self._pending
        self._pending = None
        self.state = ConversationState.RUNNING

        await self._guard(self._continue_from(route, feedback))
        return self

    async def _continue_from(self, route: Route, feedback: Optional[str]):
        if feedback:
            logger.info(f"Feedback received for {route.speaker}")
            turn = await self._append(Turn(from_=route.speaker, to=route.recipient, content=feedback))
        else:
            logger.info(f"Auto-replying for {route.speaker}")
            turn = await self._reply(route)

        if not self._check_stop(turn, route):
            await self._run(gated=True)

    async def retry(self) -> "TurnEngine":
        """
        Re-attempt the step that failed with a generation error.

        Raises:
            ProtocolError: If the conversation did not fail on a backend call
        """
        if self.state != ConversationState.FAILED or not self._retryable:
            raise ProtocolError(f"Nothing to retry in a conversation that is {self.state.value}")

        route = self._failed_route
        self._failed_route = None
        self._retryable = False
        self.state = ConversationState.RUNNING
        logger.info("Retrying failed step")

        if route is None:
            # The coordinator's selection failed; select again
            await self._guard(self._run(gated=False))
        else:
            await self._guard(self._continue_from(route, None))
        return self

    async def _guard(self, step: Awaitable[None]):
        """Run a step, marking the run FAILED if it escapes with an error while RUNNING."""
        try:
            await step
        except Exception:
            # Generation and selection failures have already settled the state
            if self.state == ConversationState.RUNNING:
                logger.error("Conversation aborted by an error outside the backend", exc_info=True)
                self.state = ConversationState.FAILED
                self._failed_route = None
                self._retryable = False
            raise

    # ------------------------------------------------------------------
    # Reply loop

    async def _run(self, gated: bool):
        while self.state == ConversationState.RUNNING:
            route = await self._next_route()
            if route is None:
                return

            if gated and self._should_interrupt(route.speaker):
                await self._pause(route)
                return

            turn = await self._reply(route)
            if self._check_stop(turn, route):
                return
            gated = True

    async def _next_route(self) -> Optional[Route]:
        """Work out who replies to the last successful turn."""
        last = self._transcript.last_success()
        speaker, recipient = last.to, last.from_

        if not self.graph.is_group(speaker):
            return Route(speaker=speaker, recipient=recipient)

        # Ends the run, see _check_stop
        if self.group.limit_reached(speaker):
            self._complete(StopReason.GROUP_ROUND_LIMIT)
            return None

        try:
            return await self.group.select_next(speaker)
        except GenerationError as e:
            await self._fail(Turn(speaker, recipient, str(e), TurnState.ERROR), retry_route=None)
            raise
        except ConfigurationError:
            self.state = ConversationState.FAILED
            raise

    async def _reply(self, route: Route) -> Turn:
        """Have the route's speaker produce a turn through its backend."""
        if route.in_group:
            messages = self.context.build_group_reply_context(
                route.speaker, self.group.history(route.coordinator)
            )
        else:
            messages = self.context.build_reply_context(route.speaker, self._transcript.successful())

        try:
            content = await self._generate(route.speaker, messages)
        except GenerationError as e:
            await self._fail(
                Turn(route.speaker, route.recipient, str(e), TurnState.ERROR),
                retry_route=route,
            )
            raise

        return await self._append(Turn(from_=route.speaker, to=route.recipient, content=content))

    async def _generate(self, name: str, messages: List[ChatMessage]) -> str:
        """Call the participant's backend and validate what comes back."""
        participant = self.registry.get(name)
        gateway = participant.provider or self.provider

        try:
            response = await gateway.generate(messages, model=participant.model)
        except Exception as e:
            logger.error(f"Generation failed for {name}: {e}", exc_info=True)
            raise GenerationError(str(e) or type(e).__name__, speaker=name) from e

        content = getattr(response, "content", response)
        if not isinstance(content, str) or not content.strip():
            logger.error(f"Generation for {name} returned unusable content: {content!r}")
            raise GenerationError(f"Backend returned no content for {name}", speaker=name)
        return content

    def _check_stop(self, turn: Turn, route: Route) -> bool:
        """Evaluate termination and round limits after a turn; True when stopped."""
        if turn.content == TERMINATE:
            self._complete(StopReason.TERMINATED)
            return True

        exchanged = self._transcript.between(route.speaker, route.recipient, since=self.group.run_start)
        if len(exchanged) >= self.max_rounds:
            self._complete(StopReason.MAX_ROUNDS)
            return True

        # A spent group ends the whole run rather than handing control back to
        # whoever addressed the coordinator
        if route.in_group and self.group.limit_reached(route.coordinator):
            self._complete(StopReason.GROUP_ROUND_LIMIT)
            return True

        return self.state != ConversationState.RUNNING

    def _should_interrupt(self, name: str) -> bool:
        policy = self.registry.get(name).effective_interrupt(self.default_interrupt)
        return policy == InterruptPolicy.ALWAYS

    # ------------------------------------------------------------------
    # State transitions

    async def _append(self, turn: Turn) -> Turn:
        self._transcript.append(turn)
        await self.events.emit(ChatEvent.MESSAGE, turn)
        return turn

    async def _pause(self, route: Route):
        self.state = ConversationState.PAUSED
        self._pending = route
        logger.info(f"Conversation paused: waiting on {route.speaker}")
        await self.events.emit(ChatEvent.INTERRUPT, route)

    async def _fail(self, error_turn: Turn, retry_route: Optional[Route]):
        self.state = ConversationState.FAILED
        self._failed_route = retry_route
        self._retryable = True
        await self._append(error_turn)

    def _complete(self, reason: StopReason):
        self.state = ConversationState.COMPLETED
        self.stop_reason = reason
        logger.info(f"Conversation completed ({reason.value}) after {len(self._transcript)} turns")

    @staticmethod
    def _coerce(turn: TurnLike) -> Turn:
        if isinstance(turn, Turn):
            return turn
        try:
            return Turn.from_dict(turn)
        except ValueError as e:
            raise ConfigurationError(f"Invalid turn: {e}") from e
