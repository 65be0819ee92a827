from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, Optional, Set

from fastapi.encoders import jsonable_encoder

from concierge.utils.config import get_settings

logger = logging.getLogger(__name__)

NEW_REQUEST = "new_request"
REQUEST_UPDATED = "request_updated"
HUMAN_ASSISTANCE_NEEDED = "human_assistance_needed"
PROACTIVE_MESSAGE = "proactive_message"


@dataclass(frozen=True)
class Event:
    kind: str
    data: Any
    room: Optional[str] = None  # None broadcasts to every subscriber

    def to_sse(self) -> Dict[str, str]:
        return {"event": self.kind, "data": json.dumps(jsonable_encoder(self.data))}


@dataclass(eq=False)
class Subscription:
    room: Optional[str]
    queue: "asyncio.Queue[Event]"
    dropped: int = 0

    def accepts(self, event: Event) -> bool:
        return event.room is None or event.room == self.room


@dataclass
class Notifier:
    """In-process fan-out of dashboard events. Delivery is best effort."""

    queue_size: int = 100
    _subscriptions: Set[Subscription] = field(default_factory=set)

    def subscribe(self, room: Optional[str] = None) -> Subscription:
        subscription = Subscription(room=room, queue=asyncio.Queue(maxsize=self.queue_size))
        self._subscriptions.add(subscription)
        logger.info("subscriber_joined", extra={"room": room, "subscribers": self.subscriber_count})
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        self._subscriptions.discard(subscription)
        logger.info("subscriber_left", extra={"room": subscription.room, "dropped": subscription.dropped})

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    async def broadcast(self, kind: str, data: Any) -> int:
        return self._deliver(Event(kind=kind, data=data))

    async def publish_to_room(self, room: str, kind: str, data: Any) -> int:
        return self._deliver(Event(kind=kind, data=data, room=room))

    async def emit(self, event: Event) -> int:
        return self._deliver(event)

    def _deliver(self, event: Event) -> int:
        delivered = 0
        for subscription in list(self._subscriptions):
            if not subscription.accepts(event):
                continue
            try:
                subscription.queue.put_nowait(event)
            except asyncio.QueueFull:
                subscription.dropped += 1
                logger.warning(
                    "subscriber_queue_full",
                    extra={"room": subscription.room, "event": event.kind},
                )
                continue
            delivered += 1
        logger.info(
            "session_event",
            extra={"event": event.kind, "room": event.room, "delivered": delivered},
        )
        return delivered

    async def stream(self, room: Optional[str] = None) -> AsyncIterator[Event]:
        subscription = self.subscribe(room)
        try:
            while True:
                yield await subscription.queue.get()
        finally:
            self.unsubscribe(subscription)


_notifier: Notifier | None = None


def get_notifier() -> Notifier:
    global _notifier
    if not _notifier:
        _notifier = Notifier(queue_size=get_settings().subscriber_queue_size)
    return _notifier
