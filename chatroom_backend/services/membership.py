# chatroom_backend/services/membership.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from chatroom_backend.core.errors import AlreadyPendingError, ValidationError
from chatroom_backend.models.models import (
    Document,
    Notification,
    NotificationType,
    Room,
    build_notification,
)
from chatroom_backend.services.notification_queue import NotificationQueue
from chatroom_backend.services.room_manager import RoomRegistry

logger = logging.getLogger(__name__)


class MembershipState(str, Enum):
    NOT_MEMBER = "NotMember"
    PENDING = "Pending"
    MEMBER = "Member"


@dataclass
class JoinOutcome:
    immediate: bool
    creator_username: str
    joining_username: str
    notification: Optional[Notification] = None


# ============================================================================
# MEMBERSHIP WORKFLOW
# ============================================================================
class MembershipWorkflow:
    """
    State machine per (room, user): NotMember -> Pending -> Member, or
    Pending -> NotMember on rejection. The creator starts as Member.

    Invariants kept by every transition:
        - the creator is always in ``members``
        - ``pending_requests`` and ``members`` are disjoint
        - a username appears at most once in each list

    Caller identity is not checked here; the command layer asks an
    ``ApprovalPolicy`` before calling ``approve``/``reject``.
    """

    def __init__(
        self,
        registry: RoomRegistry,
        notifications: NotificationQueue,
        notify_join_requests: bool = True,
    ) -> None:
        self.registry = registry
        self.notifications = notifications
        self.notify_join_requests = notify_join_requests

    @staticmethod
    def state_of(room: Room, user: str) -> MembershipState:
        if user == room.created_by or user in room.members:
            return MembershipState.MEMBER
        if user in room.pending_requests:
            return MembershipState.PENDING
        return MembershipState.NOT_MEMBER

    def request_join(self, doc: Document, room_id: str, user: str) -> JoinOutcome:
        user = _require_user(user)
        room = self.registry.get_room(doc, room_id)
        state = self.state_of(room, user)

        if state is MembershipState.MEMBER:
            if user not in room.members:
                room.members.append(user)
            return JoinOutcome(True, room.created_by, user)

        if state is MembershipState.PENDING:
            raise AlreadyPendingError(room_id, user)

        room.pending_requests.append(user)
        logger.info("→ %s requested to join %s", user, room.id)

        notification = None
        if self.notify_join_requests:
            notification = self.notifications.append(
                doc,
                build_notification(
                    NotificationType.JOIN_REQUEST,
                    from_user=user,
                    to_user=room.created_by,
                    room_id=room.id,
                    message=f"{user} requested to join {room.id}",
                ),
            )
        return JoinOutcome(False, room.created_by, user, notification)

    def approve(self, doc: Document, room_id: str, user: str) -> Notification:
        user = _require_user(user)
        room = self.registry.get_room(doc, room_id)

        _discard(room.pending_requests, user)
        if user not in room.members:
            room.members.append(user)
        logger.info("✓ %s approved into %s", user, room.id)

        return self.notifications.append(
            doc,
            build_notification(
                NotificationType.JOIN_APPROVED,
                from_user=room.created_by,
                to_user=user,
                room_id=room.id,
                message=f"Your request to join {room.id} was approved",
            ),
        )

    def reject(self, doc: Document, room_id: str, user: str) -> Notification:
        user = _require_user(user)
        room = self.registry.get_room(doc, room_id)

        _discard(room.pending_requests, user)
        logger.info("✗ %s rejected from %s", user, room.id)

        return self.notifications.append(
            doc,
            build_notification(
                NotificationType.JOIN_REJECTED,
                from_user=room.created_by,
                to_user=user,
                room_id=room.id,
                message=f"Your request to join {room.id} was rejected",
            ),
        )


def _require_user(user: str) -> str:
    user = (user or "").strip()
    if not user:
        raise ValidationError("Username required")
    return user


def _discard(items: list, value: str) -> None:
    while value in items:
        items.remove(value)
