# chatroom_backend/services/message_log.py
from __future__ import annotations

import logging
from typing import List

from chatroom_backend.core.errors import MessageTooLongError, NotAMemberError, ValidationError
from chatroom_backend.models.models import Document, Message
from chatroom_backend.services.room_manager import RoomRegistry

logger = logging.getLogger(__name__)

DEFAULT_MAX_MESSAGE_LENGTH = 1000


class MessageLog:
    """
    Append-only message sequence shared by all rooms.

    ``timestamp`` is wall-clock milliseconds and may repeat; ``seq`` is a
    document-wide counter that identifies a message and orders messages
    with equal timestamps.
    """

    def __init__(self, registry: RoomRegistry, max_length: int = DEFAULT_MAX_MESSAGE_LENGTH) -> None:
        self.registry = registry
        self.max_length = max_length

    def validate(self, room_id: str, username: str, text: str) -> None:
        if not room_id or not username or not text or not text.strip():
            raise ValidationError("Invalid message format")
        if len(text) > self.max_length:
            raise MessageTooLongError(len(text), self.max_length)

    def append(self, doc: Document, room_id: str, username: str, text: str, now: int) -> Message:
        self.validate(room_id, username, text)
        room = self.registry.get_room(doc, room_id)
        if username not in room.members:
            raise NotAMemberError(room_id, username)

        message = Message(
            room_id=room_id,
            seq=max((m.seq for m in doc.messages), default=0) + 1,
            timestamp=now,
            username=username,
            text=text,
        )
        doc.messages.append(message)
        logger.debug("📨 %s -> %s (seq=%d)", username, room_id, message.seq)
        return message

    def list_for_room(self, doc: Document, room_id: str) -> List[Message]:
        """Messages of one room, oldest first. Unknown rooms give an empty list."""
        return sorted(
            (m for m in doc.messages if m.room_id == room_id),
            key=lambda m: (m.timestamp, m.seq),
        )
