"""
Asynchronous in-process event bus for trade and agent lifecycle notifications.
"""

import asyncio
import logging
from collections import deque
from collections.abc import Callable, Coroutine
from typing import Any

from models.enums import AgentType
from models.events import RetailEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[RetailEvent], Coroutine[Any, Any, None]]


def _name(callback: Any) -> str:
    return getattr(callback, "__name__", type(callback).__name__)


class EventBus:
    """Fan-out of RetailEvents to async subscribers. Subscriber errors are logged, never raised."""

    def __init__(self, history_size: int = 100):
        self.subscribers: dict[str, list[EventHandler]] = {}
        self.history: deque[RetailEvent] = deque(maxlen=history_size)

    def subscribe(self, event_type: str, callback: EventHandler) -> None:
        """Subscribe to an event type. ``"*"`` receives every event."""
        if not callable(callback):
            raise TypeError("Callback must be a callable async function.")
        handlers = self.subscribers.setdefault(event_type, [])
        if callback in handlers:
            logger.warning(f"Callback {_name(callback)} already subscribed to {event_type}")
            return
        handlers.append(callback)
        logger.debug(f"Callback {_name(callback)} subscribed to {event_type}")

    def unsubscribe(self, event_type: str, callback: EventHandler) -> None:
        handlers = self.subscribers.get(event_type)
        if not handlers:
            return
        try:
            handlers.remove(callback)
        except ValueError:
            logger.warning(f"Callback {_name(callback)} not found for event type {event_type}")
            return
        if not handlers:
            del self.subscribers[event_type]

    async def publish(self, event: RetailEvent) -> None:
        if not isinstance(event, RetailEvent):
            logger.error(f"Attempted to publish invalid event type: {type(event)}")
            return

        self.history.append(event)
        logger.debug(f"Event published: {event.event_type} from {event.source.value}")
        handlers = list(self.subscribers.get(event.event_type, [])) + list(self.subscribers.get("*", []))
        if not handlers:
            return
        results = await asyncio.gather(*(handler(event) for handler in handlers), return_exceptions=True)
        for handler, result in zip(handlers, results):
            if isinstance(result, Exception):
                logger.error(
                    f"Error in subscriber callback '{_name(handler)}' for event {event.event_type}: {result}"
                )

    async def emit(self, event_type: str, payload: dict[str, Any], source: AgentType) -> RetailEvent:
        """Build and publish an event in one call."""
        event = RetailEvent(event_type=event_type, payload=payload, source=source)
        await self.publish(event)
        return event

    def recent(self, event_type: str | None = None) -> list[RetailEvent]:
        if event_type is None:
            return list(self.history)
        return [e for e in self.history if e.event_type == event_type]
