from __future__ import annotations

import asyncio

from chatroom_backend.services.chat_service import ChatService
from chatroom_backend.services.event_hub import EventHub
from chatroom_backend.services.sync_poller import (
    ClientSyncPoller,
    messages_poller,
    notifications_poller,
    rooms_poller,
)


async def _until(predicate, timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        assert loop.time() < deadline, "condition not reached in time"
        await asyncio.sleep(0.01)


def test_change_event_wakes_poller_before_interval(service: ChatService) -> None:
    seen = []

    async def scenario():
        await service.create_room("Room-1", "alice")
        poller = messages_poller(service, "Room-1", seen.append, interval=60)
        async with poller:
            await _until(lambda: len(seen) == 1)
            assert seen[0] == []

            await service.send_message("Room-1", "alice", "hello")
            await _until(lambda: len(seen) == 2)
            assert [m["text"] for m in seen[1]] == ["hello"]
        assert not poller.running

    asyncio.run(scenario())


def test_unchanged_snapshots_are_not_reported(service: ChatService) -> None:
    seen = []

    async def scenario():
        await service.create_room("Room-1", "alice")
        poller = rooms_poller(service, seen.append, interval=0.01)
        async with poller:
            await _until(lambda: poller.fetches >= 5)
        return poller

    poller = asyncio.run(scenario())
    assert len(seen) == 1
    assert poller.fetches >= 5


def test_stop_tears_down_subscription_and_callbacks(service: ChatService) -> None:
    seen = []

    async def scenario():
        poller = notifications_poller(service, "alice", seen.append, interval=0.01)
        await poller.start()
        await _until(lambda: len(seen) == 1)
        assert service.hub.subscriber_count == 1

        await poller.stop()
        assert not poller.running
        assert service.hub.subscriber_count == 0

        fetches = poller.fetches
        await service.add_notification("bob", "alice", "GENERIC", "Room-1", "ping")
        await asyncio.sleep(0.05)
        assert poller.fetches == fetches

    asyncio.run(scenario())
    assert seen == [[]]


def test_async_callbacks_and_fetch_errors() -> None:
    calls = {"n": 0}
    seen = []

    async def flaky_fetch():
        calls["n"] += 1
        if calls["n"] == 1:
            raise ConnectionError("backend restarting")
        return calls["n"]

    async def on_change(value):
        seen.append(value)

    async def scenario():
        poller = ClientSyncPoller(flaky_fetch, on_change, interval=0.01, hub=EventHub(), name="flaky")
        async with poller:
            await _until(lambda: len(seen) >= 2)

    asyncio.run(scenario())
    assert seen[0] == 2
    assert seen == sorted(seen)
