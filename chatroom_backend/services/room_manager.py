# chatroom_backend/services/room_manager.py
from __future__ import annotations

import logging
from typing import List, Optional

from chatroom_backend.core.errors import DuplicateRoomError, RoomNotFoundError, ValidationError
from chatroom_backend.models.models import Document, Room

logger = logging.getLogger(__name__)

# ============================================================================
# ROOM REGISTRY
# ============================================================================
class RoomRegistry:
    """
    Creates and looks up rooms inside a transaction's document.

    Holds no state of its own; every call works on the ``Document`` passed
    in, so it never keeps a reference across transactions.

    Usage:
        room = registry.create_room(doc, "Room-1", "alice", now=now_ms())
        all_rooms = registry.list_rooms(doc)
    """

    def find_room(self, doc: Document, room_id: str) -> Optional[Room]:
        for room in doc.rooms:
            if room.id == room_id:
                return room
        return None

    def get_room(self, doc: Document, room_id: str) -> Room:
        room = self.find_room(doc, room_id)
        if room is None:
            raise RoomNotFoundError(room_id)
        return room

    def list_rooms(self, doc: Document) -> List[Room]:
        """All rooms in insertion order."""
        return list(doc.rooms)

    def create_room(self, doc: Document, name: Optional[str], creator: str, now: int) -> Room:
        """
        Create a room owned by ``creator``.

        Args:
            name: Used verbatim as the room id. When omitted an id of the
                form ``Room-<epoch ms>`` is generated.
            creator: Username of the creator; becomes the first member.
            now: Creation time in epoch milliseconds.

        Raises:
            DuplicateRoomError: ``name`` is already taken.
            ValidationError: ``creator`` is blank.
        """
        creator = (creator or "").strip()
        if not creator:
            raise ValidationError("Creator username required")

        if name is not None and name.strip():
            room_id = name.strip()
            if self.find_room(doc, room_id) is not None:
                raise DuplicateRoomError(room_id)
        else:
            room_id = self._generate_id(doc, now)

        room = Room(
            id=room_id,
            created_by=creator,
            created_at=now,
            members=[creator],
            pending_requests=[],
        )
        doc.rooms.append(room)
        logger.info("✓ Created room: %s (by %s)", room.id, creator)
        return room

    def _generate_id(self, doc: Document, now: int) -> str:
        taken = {room.id for room in doc.rooms}
        stamp = now
        while f"Room-{stamp}" in taken:
            stamp += 1
        return f"Room-{stamp}"
