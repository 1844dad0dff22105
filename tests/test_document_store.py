from __future__ import annotations

import asyncio
import json
import logging
import time
from pathlib import Path

import pytest

from chatroom_backend.core.config import Settings
from chatroom_backend.core.errors import StoreUnavailableError
from chatroom_backend.models.models import Document, Room
from chatroom_backend.services.document_store import FileDocumentStore, build_store
from chatroom_backend.services.redis_document_store import RedisDocumentStore


def _add_room(room_id: str):
    def tx(doc: Document) -> int:
        doc.rooms.append(Room(id=room_id, created_by="alice", created_at=1, members=["alice"]))
        return len(doc.rooms)

    return tx


def test_first_transaction_starts_from_empty_document(store: FileDocumentStore, store_path: Path) -> None:
    assert not store_path.exists()

    count = asyncio.run(store.run_transaction(_add_room("Room-1")))

    assert count == 1
    persisted = json.loads(store_path.read_text(encoding="utf-8"))
    assert persisted["messages"] == []
    assert persisted["notifications"] == []
    assert [r["id"] for r in persisted["rooms"]] == ["Room-1"]


def test_corrupt_document_is_replaced_by_empty_and_logged(
    store: FileDocumentStore, store_path: Path, caplog
) -> None:
    store_path.parent.mkdir(parents=True)
    store_path.write_text("{not json", encoding="utf-8")

    with caplog.at_level(logging.WARNING):
        snapshot = asyncio.run(store.read_snapshot())
        count = asyncio.run(store.run_transaction(_add_room("Room-1")))

    assert snapshot.rooms == []
    assert count == 1
    assert "Unreadable document" in caplog.text


def test_schema_mismatch_counts_as_missing_document(store: FileDocumentStore, store_path: Path) -> None:
    store_path.parent.mkdir(parents=True)
    store_path.write_text(json.dumps({"rooms": [{"oops": True}]}), encoding="utf-8")

    snapshot = asyncio.run(store.read_snapshot())
    assert snapshot == Document()


def test_failed_transaction_writes_nothing(store: FileDocumentStore, store_path: Path) -> None:
    asyncio.run(store.run_transaction(_add_room("Room-1")))
    before = store_path.read_text(encoding="utf-8")

    def boom(doc: Document) -> None:
        doc.rooms.append(Room(id="Room-2", created_by="bob", created_at=2, members=["bob"]))
        raise RuntimeError("changed my mind")

    with pytest.raises(RuntimeError):
        asyncio.run(store.run_transaction(boom))

    assert store_path.read_text(encoding="utf-8") == before
    snapshot = asyncio.run(store.read_snapshot())
    assert [r.id for r in snapshot.rooms] == ["Room-1"]
    assert store.transactions_failed == 1


def test_persist_failure_surfaces_and_keeps_previous_document(
    store: FileDocumentStore, store_path: Path, monkeypatch
) -> None:
    asyncio.run(store.run_transaction(_add_room("Room-1")))
    before = store_path.read_text(encoding="utf-8")

    def disk_full(payload: str) -> None:
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(store, "_write", disk_full)

    with pytest.raises(StoreUnavailableError):
        asyncio.run(store.run_transaction(_add_room("Room-2")))

    assert store_path.read_text(encoding="utf-8") == before


def test_concurrent_transactions_do_not_lose_updates(store: FileDocumentStore) -> None:
    async def run() -> None:
        await asyncio.gather(*(store.run_transaction(_add_room(f"Room-{i}")) for i in range(25)))

    asyncio.run(run())

    snapshot = asyncio.run(store.read_snapshot())
    assert sorted(r.id for r in snapshot.rooms) == sorted(f"Room-{i}" for i in range(25))
    assert store.transactions_committed == 25


def test_cancelled_transaction_keeps_lock_until_its_write_lands(
    store: FileDocumentStore, monkeypatch
) -> None:
    original_write = store._write
    calls = {"n": 0}

    def slow_first_write(payload: str) -> None:
        calls["n"] += 1
        if calls["n"] == 1:
            time.sleep(0.3)
        original_write(payload)

    monkeypatch.setattr(store, "_write", slow_first_write)

    async def run() -> None:
        first = asyncio.create_task(store.run_transaction(_add_room("A")))
        await asyncio.sleep(0.05)
        first.cancel()
        with pytest.raises(asyncio.CancelledError):
            await first
        await store.run_transaction(_add_room("B"))

    asyncio.run(run())

    snapshot = asyncio.run(store.read_snapshot())
    assert [r.id for r in snapshot.rooms] == ["A", "B"]
    assert store.transactions_committed == 2


def test_transaction_mutations_do_not_leak_into_later_transactions(store: FileDocumentStore) -> None:
    kept = {}

    def grab(doc: Document) -> None:
        kept["doc"] = doc

    asyncio.run(store.run_transaction(grab))
    kept["doc"].rooms.append(Room(id="ghost", created_by="x", created_at=0, members=["x"]))

    snapshot = asyncio.run(store.read_snapshot())
    assert snapshot.rooms == []


def test_build_store_picks_backend(tmp_path: Path) -> None:
    settings = Settings()
    settings.DATA_DIR = str(tmp_path)
    settings.STORE_BACKEND = "file"
    file_store = build_store(settings)
    assert isinstance(file_store, FileDocumentStore)
    assert file_store.location() == str(tmp_path / settings.STORE_FILE)

    settings.STORE_BACKEND = "redis"
    redis_store = build_store(settings)
    assert isinstance(redis_store, RedisDocumentStore)
    assert redis_store.location().startswith("redis://")
