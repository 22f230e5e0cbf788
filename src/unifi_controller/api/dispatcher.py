"""Fan-out of ControllerEvents to registered subscribers."""

from __future__ import annotations

import inspect
from collections.abc import Coroutine
from typing import Any, Callable, Optional, Union

import structlog

from unifi_controller.models import ControllerEvent

logger = structlog.get_logger(__name__)

Subscriber = Union[
    Callable[[ControllerEvent], None],
    Callable[[ControllerEvent], Coroutine[Any, Any, None]],
]


class EventDispatcher:
    """Named-event bus with typed payloads.

    Subscribers register for one event name, or for every event with
    ``name=None``. Both sync and async callbacks are supported. A subscriber
    that raises is logged and skipped; the remaining subscribers still
    receive the event.

    Example:
        dispatcher = EventDispatcher()
        unsubscribe = dispatcher.subscribe(print, name="EVT_WU_Connected")
        await dispatcher.emit(event)
        unsubscribe()
    """

    def __init__(self) -> None:
        self._subscribers: list[tuple[Optional[str], Subscriber]] = []

    def subscribe(
        self,
        callback: Subscriber,
        name: Optional[str] = None,
    ) -> Callable[[], None]:
        """Register a callback.

        Args:
            callback: Called with each matching ControllerEvent.
            name: Event name to match, or None for all events.

        Returns:
            A function removing this registration.
        """
        entry = (name, callback)
        self._subscribers.append(entry)

        def unsubscribe() -> None:
            if entry in self._subscribers:
                self._subscribers.remove(entry)

        return unsubscribe

    def subscriber_count(self, name: Optional[str] = None) -> int:
        return sum(1 for n, _ in self._subscribers if n is None or n == name)

    async def emit(self, event: ControllerEvent) -> int:
        """Deliver an event to every matching subscriber, in registration order.

        Returns:
            Number of subscribers that handled the event without raising.
        """
        delivered = 0
        # Copy: a callback may unsubscribe while we iterate
        for name, callback in list(self._subscribers):
            if name is not None and name != event.name:
                continue
            try:
                result = callback(event)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception as e:
                logger.error(
                    "subscriber_failed",
                    event_name=event.name,
                    error=str(e),
                    error_type=type(e).__name__,
                )
        return delivered
