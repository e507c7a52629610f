"""In-process publish/subscribe for change snapshots."""
from __future__ import annotations

import inspect
import logging
import uuid
from typing import Any, Awaitable, Callable, Union

from pydantic import BaseModel

logger = logging.getLogger("ccwatch.events")

EventHandler = Callable[[Any], Union[None, Awaitable[None]]]
Unsubscribe = Callable[[], None]


class EventBus:
    """Delivers each published event to the handlers registered for its type.

    Events are full "current state" snapshots, so delivery order across
    publishers does not matter to subscribers.
    """

    def __init__(self) -> None:
        self._subscribers: dict[type, list[tuple[str, EventHandler]]] = {}

    def subscribe(self, event_type: type[BaseModel], handler: EventHandler) -> Unsubscribe:
        """Register a handler; returns a callable that removes it."""
        subscriber_id = str(uuid.uuid4())
        self._subscribers.setdefault(event_type, []).append((subscriber_id, handler))

        def unsubscribe() -> None:
            subscribers = self._subscribers.get(event_type, [])
            self._subscribers[event_type] = [item for item in subscribers if item[0] != subscriber_id]

        return unsubscribe

    def subscriber_count(self, event_type: type[BaseModel]) -> int:
        return len(self._subscribers.get(event_type, []))

    async def publish(self, event: BaseModel) -> None:
        for _, handler in list(self._subscribers.get(type(event), [])):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Event handler failed for %s", type(event).__name__)
