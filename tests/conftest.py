from __future__ import annotations

import itertools
from pathlib import Path

import pytest

from chatroom_backend.services.chat_service import ChatService
from chatroom_backend.services.document_store import FileDocumentStore


class _Clock:
    """Deterministic millisecond clock; ``freeze`` makes every tick equal."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self._counter = itertools.count(start)
        self.frozen: int | None = None

    def __call__(self) -> int:
        if self.frozen is not None:
            return self.frozen
        return next(self._counter)

    def freeze(self, value: int) -> None:
        self.frozen = value


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "db.json"


@pytest.fixture
def store(store_path: Path) -> FileDocumentStore:
    return FileDocumentStore(str(store_path))


@pytest.fixture
def clock() -> _Clock:
    return _Clock()


@pytest.fixture
def service(store: FileDocumentStore, clock: _Clock) -> ChatService:
    return ChatService(store, clock=clock)
