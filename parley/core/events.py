"""Per-conversation event channel."""

import inspect
import logging
from enum import Enum
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)


class ChatEvent(str, Enum):
    """Events published by the turn engine."""
    MESSAGE = "message"
    INTERRUPT = "interrupt"


Handler = Callable[..., Any]


class EventChannel:
    """
    Publishes engine events to registered handlers.

    Handlers are called with ``(payload, source)`` in registration order.
    Coroutine handlers are awaited before the next handler runs, and handler
    errors propagate to whoever emitted the event.
    """

    def __init__(self, source: Any = None):
        self.source = source
        self._handlers: Dict[ChatEvent, List[Handler]] = {event: [] for event in ChatEvent}

    def on(self, event: ChatEvent | str, handler: Handler) -> Callable[[], None]:
        """Register a handler; returns a callable that unregisters it."""
        event = self._event(event)
        self._handlers[event].append(handler)
        return lambda: self.off(event, handler)

    def off(self, event: ChatEvent | str, handler: Handler):
        """Unregister a handler. Unknown handlers are ignored."""
        handlers = self._handlers[self._event(event)]
        if handler in handlers:
            handlers.remove(handler)

    def handler_count(self, event: ChatEvent | str) -> int:
        return len(self._handlers[self._event(event)])

    async def emit(self, event: ChatEvent | str, payload: Any = None):
        """Dispatch an event to every handler registered for it."""
        event = self._event(event)
        # Copy so handlers may unsubscribe while being dispatched
        for handler in list(self._handlers[event]):
            result = handler(payload, self.source)
            if inspect.isawaitable(result):
                await result

    @staticmethod
    def _event(event: ChatEvent | str) -> ChatEvent:
        try:
            return ChatEvent(event)
        except ValueError:
            raise ValueError(f"Unknown event: {event!r}") from None
