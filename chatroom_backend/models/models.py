# chatroom_backend/models/models.py
from __future__ import annotations

import time
import uuid
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


# ============================================================================
# ROOMS AND MESSAGES
# ============================================================================

class Room(BaseModel):
    id: str
    created_by: str
    created_at: int
    members: List[str] = Field(default_factory=list)
    pending_requests: List[str] = Field(default_factory=list)


class Message(BaseModel):
    room_id: str
    seq: int
    timestamp: int
    username: str
    text: str


# ============================================================================
# NOTIFICATIONS
# ============================================================================

class NotificationType(str, Enum):
    JOIN_REQUEST = "JOIN_REQUEST"
    JOIN_APPROVED = "JOIN_APPROVED"
    JOIN_REJECTED = "JOIN_REJECTED"
    GENERIC = "GENERIC"


class _NotificationBase(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    from_user: str
    to_user: str
    room_id: str
    timestamp: int = Field(default_factory=now_ms)
    read: bool = False
    message: Optional[str] = None


class JoinRequestNotification(_NotificationBase):
    type: Literal["JOIN_REQUEST"] = "JOIN_REQUEST"


class JoinApprovedNotification(_NotificationBase):
    type: Literal["JOIN_APPROVED"] = "JOIN_APPROVED"


class JoinRejectedNotification(_NotificationBase):
    type: Literal["JOIN_REJECTED"] = "JOIN_REJECTED"


class GenericNotification(_NotificationBase):
    type: Literal["GENERIC"] = "GENERIC"


Notification = Annotated[
    Union[
        JoinRequestNotification,
        JoinApprovedNotification,
        JoinRejectedNotification,
        GenericNotification,
    ],
    Field(discriminator="type"),
]

NOTIFICATION_CLASSES = {
    NotificationType.JOIN_REQUEST: JoinRequestNotification,
    NotificationType.JOIN_APPROVED: JoinApprovedNotification,
    NotificationType.JOIN_REJECTED: JoinRejectedNotification,
    NotificationType.GENERIC: GenericNotification,
}


def build_notification(
    kind: NotificationType,
    from_user: str,
    to_user: str,
    room_id: str,
    message: Optional[str] = None,
) -> Notification:
    """Instantiate the notification variant that matches ``kind``."""
    cls = NOTIFICATION_CLASSES[NotificationType(kind)]
    return cls(from_user=from_user, to_user=to_user, room_id=room_id, message=message)


# ============================================================================
# THE DOCUMENT
# ============================================================================

class Document(BaseModel):
    """
    The whole persisted state. Loaded in full at the start of every
    transaction and rewritten in full at commit.

    Storage Format (db.json):
        {
            "rooms": [{"id": "Room-1", "created_by": "alice", ...}],
            "messages": [{"room_id": "Room-1", "seq": 1, ...}],
            "notifications": [{"id": "...", "type": "JOIN_REQUEST", ...}]
        }
    """

    rooms: List[Room] = Field(default_factory=list)
    messages: List[Message] = Field(default_factory=list)
    notifications: List[Notification] = Field(default_factory=list)


# ============================================================================
# REQUEST BODIES
# ============================================================================

class CreateRoomRequest(BaseModel):
    name: Optional[str] = None
    creator_username: str


class JoinRoomRequest(BaseModel):
    username: str


class ResolveJoinRequest(BaseModel):
    username: str
    notification_id: Optional[str] = None
    actor: Optional[str] = None


class SendMessageRequest(BaseModel):
    username: str
    text: str


class AddNotificationRequest(BaseModel):
    from_user: str
    to_user: str
    type: NotificationType = NotificationType.GENERIC
    room_id: str
    message: Optional[str] = None
