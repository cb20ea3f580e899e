"""AsyncIOBus -- default EventBus implementation using in-process async pub/sub.

Events are dispatched to subscribers via asyncio.create_task(). Nothing is
written to disk: persistence belongs to the backend service. The bus keeps a
short in-memory backlog so a client that connects to the event stream late
can still see the latest alerts and invalidations.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Any, Callable, Coroutine

from core.models.events import Event

logger = logging.getLogger(__name__)

Callback = Callable[[Event], Coroutine[Any, Any, None]]

DEFAULT_BACKLOG = 100


class AsyncIOBus:
    """In-process async pub/sub event bus.

    Implements the EventBus protocol.

    Usage:
        bus = AsyncIOBus()
        bus.subscribe("alert.triggered", my_handler)
        await bus.publish(event)
        bus.recent("alert.triggered", limit=5)
    """

    def __init__(self, backlog: int = DEFAULT_BACKLOG) -> None:
        self._subscribers: dict[str, list[Callback]] = {}
        self._wildcard_subscribers: list[Callback] = []
        self._backlog: deque[Event] = deque(maxlen=max(0, backlog))

    @property
    def name(self) -> str:
        return "asyncio_bus"

    async def publish(self, event: Event) -> None:
        """Remember the event, then dispatch it to matching subscribers."""
        self._backlog.append(event)

        callbacks = self._subscribers.get(event.type, []) + self._wildcard_subscribers
        if not callbacks:
            logger.debug("No subscribers for event type: %s", event.type)
            return

        logger.debug("Publishing %s from %s to %d subscriber(s)", event.type, event.source, len(callbacks))

        # Subscribers run concurrently; one failing never blocks the rest
        await asyncio.gather(
            *(asyncio.create_task(self._safe_invoke(cb, event)) for cb in callbacks),
            return_exceptions=True,
        )

    def subscribe(self, event_type: str, callback: Callback) -> None:
        """Register a callback for events of the given type.

        Use event_type="*" to subscribe to all events.
        """
        if event_type == "*":
            self._wildcard_subscribers.append(callback)
        else:
            self._subscribers.setdefault(event_type, []).append(callback)

    def unsubscribe(self, event_type: str, callback: Callback) -> None:
        """Remove a previously registered callback; unknown callbacks are ignored."""
        targets = self._wildcard_subscribers if event_type == "*" else self._subscribers.get(event_type, [])
        if callback in targets:
            targets.remove(callback)

    def subscriber_count(self, event_type: str | None = None) -> int:
        if event_type is None:
            return sum(len(cbs) for cbs in self._subscribers.values()) + len(self._wildcard_subscribers)
        if event_type == "*":
            return len(self._wildcard_subscribers)
        return len(self._subscribers.get(event_type, []))

    def recent(self, event_type: str | None = None, limit: int | None = None) -> list[Event]:
        """Latest published events, oldest first."""
        events = [e for e in self._backlog if event_type is None or e.type == event_type]
        if limit is not None:
            events = events[-limit:] if limit > 0 else []
        return events

    async def _safe_invoke(self, callback: Callback, event: Event) -> None:
        try:
            await callback(event)
        except Exception:
            logger.exception("Error in event handler for %s", event.type)
