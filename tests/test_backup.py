from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from chatroom_backend.services import backup
from chatroom_backend.services.backup import BackupScheduler
from chatroom_backend.services.chat_service import ChatService
from chatroom_backend.services.document_store import FileDocumentStore


def test_nothing_to_back_up_before_first_write(store: FileDocumentStore, tmp_path: Path) -> None:
    scheduler = BackupScheduler(store, str(tmp_path / "backups"), interval=3600)
    assert asyncio.run(scheduler.backup_now()) is None
    assert scheduler.list_backups() == []


def test_backup_is_a_full_copy_of_the_document(service: ChatService, store: FileDocumentStore, tmp_path: Path) -> None:
    scheduler = BackupScheduler(store, str(tmp_path / "backups"), interval=3600)

    async def scenario():
        await service.create_room("Room-1", "alice")
        await service.send_message("Room-1", "alice", "hi")
        return await scheduler.backup_now()

    path = asyncio.run(scenario())

    assert Path(path).name.startswith("backup-")
    backup = json.loads(Path(path).read_text(encoding="utf-8"))
    assert [r["id"] for r in backup["rooms"]] == ["Room-1"]
    assert [m["text"] for m in backup["messages"]] == ["hi"]


def test_old_backups_are_pruned(service: ChatService, store: FileDocumentStore, tmp_path: Path) -> None:
    scheduler = BackupScheduler(store, str(tmp_path / "backups"), interval=3600, retention=2)

    async def scenario():
        await service.create_room("Room-1", "alice")
        return [await scheduler.backup_now() for _ in range(4)]

    paths = asyncio.run(scenario())

    assert scheduler.list_backups() == paths[-2:]


def test_scheduler_runs_periodically_and_stops(service: ChatService, store: FileDocumentStore, tmp_path: Path) -> None:
    scheduler = BackupScheduler(store, str(tmp_path / "backups"), interval=0.01, retention=50)

    async def scenario():
        await service.create_room("Room-1", "alice")
        scheduler.start()
        await asyncio.sleep(0.1)
        await scheduler.stop()
        count = len(scheduler.list_backups())
        await asyncio.sleep(0.05)
        return count

    count = asyncio.run(scenario())
    assert count >= 1
    assert len(scheduler.list_backups()) == count


def test_interrupted_backup_leaves_no_partial_file(
    service: ChatService, store: FileDocumentStore, tmp_path: Path, monkeypatch
) -> None:
    backup_dir = tmp_path / "backups"
    scheduler = BackupScheduler(store, str(backup_dir), interval=3600)
    asyncio.run(service.create_room("Room-1", "alice"))

    def crash(src, dst):
        raise OSError(5, "Input/output error")

    monkeypatch.setattr(backup.os, "replace", crash)

    with pytest.raises(OSError):
        asyncio.run(scheduler.backup_now())

    assert scheduler.list_backups() == []
    assert list(backup_dir.iterdir()) == []
