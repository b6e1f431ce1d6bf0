"""Notifications published by the draw core."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Type, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DrawRequested:
    """A draw was issued and is waiting for randomness."""

    campaign_id: str
    request_id: str


@dataclass(frozen=True)
class WinnerAnnounced:
    """A campaign was decided by the fulfillment of ``request_id``."""

    campaign_id: str
    winner: str
    winner_index: int
    request_id: str


GiveawayEvent = Union[DrawRequested, WinnerAnnounced]
EventHandler = Callable[[GiveawayEvent], object]


class EventBus:
    """Synchronous in-process publisher.

    Handlers run on the publishing thread in subscription order. A handler
    that raises is logged and skipped; it never affects the operation that
    published the event or the remaining handlers.
    """

    def __init__(self) -> None:
        self._handlers: Dict[Optional[type], List[EventHandler]] = {}
        self._lock = threading.Lock()

    def subscribe(
        self,
        handler: EventHandler,
        event_type: Optional[Type[GiveawayEvent]] = None,
    ) -> Callable[[], None]:
        """Register ``handler`` for ``event_type`` (all events when ``None``).

        Returns a callable that removes the subscription.
        """
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)

        def unsubscribe() -> None:
            with self._lock:
                handlers = self._handlers.get(event_type, [])
                if handler in handlers:
                    handlers.remove(handler)

        return unsubscribe

    def publish(self, event: GiveawayEvent) -> None:
        with self._lock:
            handlers = list(self._handlers.get(type(event), []))
            handlers += self._handlers.get(None, [])
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception("Event handler %r failed for %r", handler, event)


__all__ = [
    "DrawRequested",
    "EventBus",
    "EventHandler",
    "GiveawayEvent",
    "WinnerAnnounced",
]
