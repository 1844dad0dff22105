# chatroom_backend/services/notification_queue.py
from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from chatroom_backend.models.models import Document, Notification, NotificationType, now_ms

logger = logging.getLogger(__name__)


class NotificationQueue:
    """Append-only per-user events with read tracking."""

    def append(self, doc: Document, notification: Notification) -> Notification:
        if not notification.id:
            notification.id = uuid.uuid4().hex
        if not notification.timestamp:
            notification.timestamp = now_ms()
        doc.notifications.append(notification)
        logger.debug(
            "Queued %s for %s (room=%s)",
            notification.type,
            notification.to_user,
            notification.room_id,
        )
        return notification

    def find(self, doc: Document, notification_id: str) -> Optional[Notification]:
        for notification in doc.notifications:
            if notification.id == notification_id:
                return notification
        return None

    def list_unread_for(self, doc: Document, username: str) -> List[Notification]:
        return [n for n in doc.notifications if n.to_user == username and not n.read]

    def mark_read(self, doc: Document, notification_id: str) -> bool:
        """
        Mark one notification read. Unknown ids and already-read
        notifications are ignored; returns whether anything changed.
        """
        notification = self.find(doc, notification_id)
        if notification is None or notification.read:
            return False
        notification.read = True
        return True

    def mark_all_read(self, doc: Document, username: str) -> int:
        unread = self.list_unread_for(doc, username)
        for notification in unread:
            notification.read = True
        return len(unread)

    def mark_join_request_read(self, doc: Document, notification_id: str, room_id: str, username: str) -> bool:
        """Mark read only the JOIN_REQUEST that ``username`` sent for ``room_id``."""
        notification = self.find(doc, notification_id)
        if (
            notification is None
            or notification.type != NotificationType.JOIN_REQUEST
            or notification.room_id != room_id
            or notification.from_user != username
        ):
            logger.debug("Notification %s is not %s's request for %s; left as is", notification_id, username, room_id)
            return False
        return self.mark_read(doc, notification_id)
