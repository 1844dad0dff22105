# chatroom_backend/services/chat_service.py

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from chatroom_backend.core.errors import (
    INTERNAL_ERROR_CODE,
    ChatError,
    PermissionDeniedError,
    ValidationError,
)
from chatroom_backend.models.models import (
    Document,
    NotificationType,
    build_notification,
    now_ms,
)
from chatroom_backend.services.document_store import DocumentStore
from chatroom_backend.services.event_hub import (
    ROOMS_TOPIC,
    EventHub,
    messages_topic,
    notifications_topic,
)
from chatroom_backend.services.membership import MembershipWorkflow
from chatroom_backend.services.message_log import DEFAULT_MAX_MESSAGE_LENGTH, MessageLog
from chatroom_backend.services.notification_queue import NotificationQueue
from chatroom_backend.services.policy import ApprovalPolicy, CreatorApprovalPolicy
from chatroom_backend.services.room_manager import RoomRegistry

logger = logging.getLogger(__name__)

Result = Dict[str, Any]
Topics = List[str]


def _dump(model) -> dict:
    return model.model_dump(mode="json")


# ============================================================================
# COMMAND BOUNDARY
# ============================================================================

class ChatService:
    """
    The command interface of the chat backend.

    Every mutating command is exactly one ``DocumentStore`` transaction; the
    registry, workflow, log and queue only touch the document handed to
    that transaction. After a commit the affected topics are published on
    the ``EventHub`` so sync pollers can re-fetch.

    Commands never raise: domain and store failures come back as
        {"success": False, "error": "<message>", "code": "<code>"}

    Read commands are snapshot reads and return plain lists; an unknown
    room simply yields an empty list.
    """

    def __init__(
        self,
        store: DocumentStore,
        hub: Optional[EventHub] = None,
        policy: Optional[ApprovalPolicy] = None,
        max_message_length: int = DEFAULT_MAX_MESSAGE_LENGTH,
        notify_join_requests: bool = True,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.store = store
        self.hub = hub or EventHub()
        self.policy = policy or CreatorApprovalPolicy()
        self.clock = clock

        self.rooms = RoomRegistry()
        self.notifications = NotificationQueue()
        self.messages = MessageLog(self.rooms, max_length=max_message_length)
        self.membership = MembershipWorkflow(
            self.rooms, self.notifications, notify_join_requests=notify_join_requests
        )

        self.messages_sent = 0

    async def _execute(self, command: str, fn: Callable[[Document], Tuple[Result, Topics]]) -> Result:
        try:
            result, topics = await self.store.run_transaction(fn)
        except ChatError as e:
            logger.info("%s failed: %s", command, e)
            return e.to_result()
        except Exception:
            logger.exception("%s crashed", command)
            return {"success": False, "error": "Internal error", "code": INTERNAL_ERROR_CODE}

        for topic in topics:
            self.hub.publish(topic, {"command": command})
        return result

    # ------------------------------------------------------------------
    # Rooms
    # ------------------------------------------------------------------

    async def create_room(self, name: Optional[str], creator_username: str) -> Result:
        def tx(doc: Document):
            room = self.rooms.create_room(doc, name, creator_username, self.clock())
            return {"success": True, "room": _dump(room)}, [ROOMS_TOPIC]

        return await self._execute("create_room", tx)

    async def list_rooms(self) -> List[dict]:
        doc = await self.store.read_snapshot()
        return [_dump(room) for room in self.rooms.list_rooms(doc)]

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    async def request_join(self, room_id: str, username: str) -> Result:
        def tx(doc: Document):
            outcome = self.membership.request_join(doc, room_id, username)
            result: Result = {"success": True, "immediate": outcome.immediate}
            topics = [ROOMS_TOPIC]
            if not outcome.immediate:
                result["notification"] = {
                    "creator_username": outcome.creator_username,
                    "joining_username": outcome.joining_username,
                }
                if outcome.notification is not None:
                    result["notification"]["id"] = outcome.notification.id
                    topics.append(notifications_topic(outcome.creator_username))
            return result, topics

        return await self._execute("request_join", tx)

    def _authorize(self, doc: Document, room_id: str, actor: Optional[str]) -> None:
        if actor is None:
            return
        room = self.rooms.get_room(doc, room_id)
        if not self.policy.can_approve(room, actor):
            raise PermissionDeniedError(f"{actor} cannot manage join requests for {room_id}")

    async def approve_join(
        self,
        notification_id: Optional[str],
        username: str,
        room_id: str,
        actor: Optional[str] = None,
    ) -> Result:
        def tx(doc: Document):
            self._authorize(doc, room_id, actor)
            notification = self.membership.approve(doc, room_id, username)
            if notification_id:
                self.notifications.mark_join_request_read(doc, notification_id, room_id, notification.to_user)
            return {"success": True}, [
                ROOMS_TOPIC,
                notifications_topic(notification.to_user),
                notifications_topic(notification.from_user),
            ]

        return await self._execute("approve_join", tx)

    async def reject_join(
        self,
        notification_id: Optional[str],
        username: str,
        room_id: str,
        actor: Optional[str] = None,
    ) -> Result:
        def tx(doc: Document):
            self._authorize(doc, room_id, actor)
            notification = self.membership.reject(doc, room_id, username)
            if notification_id:
                self.notifications.mark_join_request_read(doc, notification_id, room_id, notification.to_user)
            return {"success": True}, [
                ROOMS_TOPIC,
                notifications_topic(notification.to_user),
                notifications_topic(notification.from_user),
            ]

        return await self._execute("reject_join", tx)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def send_message(self, room_id: str, username: str, text: str) -> Result:
        def tx(doc: Document):
            message = self.messages.append(doc, room_id, username, text, self.clock())
            return (
                {"success": True, "timestamp": message.timestamp, "seq": message.seq},
                [messages_topic(room_id)],
            )

        result = await self._execute("send_message", tx)
        if result.get("success"):
            self.messages_sent += 1
        return result

    async def list_messages(self, room_id: str) -> List[dict]:
        doc = await self.store.read_snapshot()
        return [_dump(m) for m in self.messages.list_for_room(doc, room_id)]

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    async def add_notification(
        self,
        from_user: str,
        to_user: str,
        type: NotificationType,
        room_id: str,
        message: Optional[str] = None,
    ) -> Result:
        def tx(doc: Document):
            if not (from_user or "").strip() or not (to_user or "").strip():
                raise ValidationError("Notification needs both a sender and a recipient")
            try:
                kind = NotificationType(type)
            except ValueError:
                raise ValidationError(f"Unknown notification type: {type}")
            notification = self.notifications.append(
                doc, build_notification(kind, from_user, to_user, room_id, message)
            )
            return (
                {"success": True, "notification": _dump(notification)},
                [notifications_topic(to_user)],
            )

        return await self._execute("add_notification", tx)

    async def list_notifications(self, username: str) -> List[dict]:
        doc = await self.store.read_snapshot()
        return [_dump(n) for n in self.notifications.list_unread_for(doc, username)]

    async def mark_notification_read(self, notification_id: str) -> Result:
        def tx(doc: Document):
            notification = self.notifications.find(doc, notification_id)
            changed = self.notifications.mark_read(doc, notification_id)
            topics = [notifications_topic(notification.to_user)] if changed else []
            return {"success": True}, topics

        return await self._execute("mark_notification_read", tx)

    async def mark_all_notifications_read(self, username: str) -> Result:
        def tx(doc: Document):
            count = self.notifications.mark_all_read(doc, username)
            topics = [notifications_topic(username)] if count else []
            return {"success": True, "count": count}, topics

        return await self._execute("mark_all_notifications_read", tx)

    # ------------------------------------------------------------------
    # Store
    # ------------------------------------------------------------------

    def get_store_location(self) -> Result:
        return {"success": True, "location": self.store.location()}
