# chatroom_backend/core/state.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from chatroom_backend.core.config import settings
from chatroom_backend.services.backup import BackupScheduler
from chatroom_backend.services.chat_service import ChatService
from chatroom_backend.services.document_store import DocumentStore, build_store
from chatroom_backend.services.event_hub import EventHub

# Global singletons for app state
store: DocumentStore
hub: EventHub
chat_service: ChatService
backup_scheduler: BackupScheduler

# Metrics
app_start_time: datetime = datetime.now(timezone.utc)


def configure(new_store: Optional[DocumentStore] = None) -> ChatService:
    """(Re)build the singletons around ``new_store`` or the configured backend."""
    global store, hub, chat_service, backup_scheduler

    store = new_store or build_store(settings)
    hub = EventHub()
    chat_service = ChatService(
        store,
        hub=hub,
        max_message_length=settings.MAX_MESSAGE_LENGTH,
        notify_join_requests=settings.JOIN_REQUEST_IN_WORKFLOW,
    )
    backup_scheduler = BackupScheduler(
        store,
        directory=settings.BACKUP_DIR,
        interval=settings.BACKUP_INTERVAL_SECONDS,
        retention=settings.BACKUP_RETENTION,
    )
    return chat_service


configure()
