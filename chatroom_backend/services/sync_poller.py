# chatroom_backend/services/sync_poller.py

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Iterable, Optional

from chatroom_backend.services.event_hub import (
    ROOMS_TOPIC,
    EventHub,
    Subscription,
    messages_topic,
    notifications_topic,
)

logger = logging.getLogger(__name__)

MESSAGES_INTERVAL = 1.0
NOTIFICATIONS_INTERVAL = 5.0
ROOMS_INTERVAL = 5.0


class ClientSyncPoller:
    """
    Keeps one client view (messages of a room, a user's notifications, the
    room list) in sync with the store.

    The view is re-fetched every ``interval`` seconds, and immediately when
    the hub reports a change on one of ``topics``. ``on_change`` is called
    with the new snapshot only when it differs from the last one seen.

    ``stop()`` cancels the polling task and tears down the hub subscription;
    after it returns ``on_change`` is never called again.

    Usage:
        async with messages_poller(service, "Room-1", render) as poller:
            ...
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[Any]],
        on_change: Callable[[Any], Any],
        interval: float,
        hub: Optional[EventHub] = None,
        topics: Iterable[str] = (),
        name: str = "view",
    ) -> None:
        self.fetch = fetch
        self.on_change = on_change
        self.interval = interval
        self.hub = hub
        self.topics = list(topics)
        self.name = name

        self.snapshot: Any = None
        self.fetches = 0
        self._has_snapshot = False
        self._task: Optional[asyncio.Task] = None
        self._subscription: Optional[Subscription] = None
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> "ClientSyncPoller":
        if self.running:
            return self
        self._stopped = False
        if self.hub is not None and self.topics:
            self._subscription = self.hub.subscribe(self.topics)
        self._task = asyncio.create_task(self._run(), name=f"sync-poller:{self.name}")
        logger.debug("Started poller %s every %.1fs", self.name, self.interval)
        return self

    async def stop(self) -> None:
        self._stopped = True
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.debug("Stopped poller %s after %d fetches", self.name, self.fetches)

    async def refresh(self) -> bool:
        """Fetch once and reconcile. Returns whether the view changed."""
        data = await self.fetch()
        self.fetches += 1
        if self._stopped:
            return False
        if self._has_snapshot and data == self.snapshot:
            return False

        self.snapshot = data
        self._has_snapshot = True
        outcome = self.on_change(data)
        if inspect.isawaitable(outcome):
            await outcome
        return True

    async def _wait_for_trigger(self) -> bool:
        """Sleep until the next tick or a hub event. False once unsubscribed."""
        if self._subscription is None:
            await asyncio.sleep(self.interval)
            return True
        try:
            event = await asyncio.wait_for(self._subscription.get(), timeout=self.interval)
        except asyncio.TimeoutError:
            return True
        return event is not None

    async def _run(self) -> None:
        while not self._stopped:
            try:
                await self.refresh()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("Poller %s fetch failed: %s", self.name, e)

            if not await self._wait_for_trigger():
                break

    async def __aenter__(self) -> "ClientSyncPoller":
        return await self.start()

    async def __aexit__(self, *exc) -> None:
        await self.stop()


# ============================================================================
# VIEW FACTORIES
# ============================================================================

def messages_poller(service, room_id: str, on_change, interval: float = MESSAGES_INTERVAL) -> ClientSyncPoller:
    return ClientSyncPoller(
        fetch=lambda: service.list_messages(room_id),
        on_change=on_change,
        interval=interval,
        hub=service.hub,
        topics=[messages_topic(room_id)],
        name=f"messages:{room_id}",
    )


def notifications_poller(service, username: str, on_change, interval: float = NOTIFICATIONS_INTERVAL) -> ClientSyncPoller:
    return ClientSyncPoller(
        fetch=lambda: service.list_notifications(username),
        on_change=on_change,
        interval=interval,
        hub=service.hub,
        topics=[notifications_topic(username)],
        name=f"notifications:{username}",
    )


def rooms_poller(service, on_change, interval: float = ROOMS_INTERVAL) -> ClientSyncPoller:
    return ClientSyncPoller(
        fetch=service.list_rooms,
        on_change=on_change,
        interval=interval,
        hub=service.hub,
        topics=[ROOMS_TOPIC],
        name="rooms",
    )
