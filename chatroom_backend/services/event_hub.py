# chatroom_backend/services/event_hub.py

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Iterable, Optional, Set

from chatroom_backend.models.models import now_ms

logger = logging.getLogger(__name__)

ROOMS_TOPIC = "rooms"


def messages_topic(room_id: str) -> str:
    return f"messages:{room_id}"


def notifications_topic(username: str) -> str:
    return f"notifications:{username}"


# ============================================================================
# SUBSCRIPTIONS
# ============================================================================

class Subscription:
    """
    A live interest in one or more topics.

    Events are buffered in a bounded queue; when the consumer falls behind
    the oldest events are dropped, since every event only means "re-fetch
    this view". ``cancel()`` detaches it from the hub and wakes any pending
    ``get()`` with ``None``.
    """

    def __init__(self, hub: "EventHub", topics: Set[str], queue_size: int) -> None:
        self.hub = hub
        self.topics = topics
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self.closed = False

    def matches(self, topic: str) -> bool:
        return "*" in self.topics or topic in self.topics

    def push(self, event: dict) -> None:
        if self.closed:
            return
        while self.queue.full():
            self.queue.get_nowait()
        self.queue.put_nowait(event)

    async def get(self) -> Optional[dict]:
        if self.closed and self.queue.empty():
            return None
        return await self.queue.get()

    def cancel(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.hub.unsubscribe(self)
        # Unblock a consumer waiting in get()
        if self.queue.full():
            self.queue.get_nowait()
        self.queue.put_nowait(None)

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, *exc) -> None:
        self.cancel()


# ============================================================================
# EVENT HUB
# ============================================================================

class EventHub:
    """
    In-process change feed.

    The command layer publishes one event per topic after a transaction
    commits:
        rooms                    a room was created or its membership changed
        messages:<room_id>       a message was appended to the room
        notifications:<user>     the user's unread notifications changed

    Consumers (sync pollers) subscribe to the topics of the view they show
    and re-fetch when woken. The hub never carries state itself; the
    document store stays the only source of truth.
    """

    def __init__(self, queue_size: int = 64) -> None:
        self._queue_size = max(1, int(queue_size))
        self._subscriptions: Dict[int, Subscription] = {}
        self.events_published = 0

    def subscribe(self, topics: Iterable[str]) -> Subscription:
        normalised = {str(t).strip() for t in topics if str(t).strip()} or {"*"}
        subscription = Subscription(self, normalised, self._queue_size)
        self._subscriptions[id(subscription)] = subscription
        logger.debug("✓ Subscribed to %s. Total: %d", sorted(normalised), len(self._subscriptions))
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        if self._subscriptions.pop(id(subscription), None) is not None:
            logger.debug("✗ Unsubscribed from %s. Total: %d", sorted(subscription.topics), len(self._subscriptions))

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def publish(self, topic: str, payload: Optional[dict] = None) -> None:
        event = {"topic": topic, "timestamp": now_ms(), "payload": payload or {}}
        self.events_published += 1
        for subscription in list(self._subscriptions.values()):
            if subscription.matches(topic):
                subscription.push(event)
