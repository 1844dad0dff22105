# chatroom_backend/api/routes/metrics.py
from fastapi import APIRouter
from datetime import datetime, timezone

from chatroom_backend.core import state

router = APIRouter()

@router.get("/metrics")
async def get_metrics():
    """
    Store and traffic metrics.

    Returns:
        dict: Comprehensive metrics including:
            - Document size (rooms, messages, notifications, pending requests)
            - Transaction statistics (committed, failed, write conflicts retried)
            - Traffic (messages sent since start, messages/sec)
            - Sync (events published, live subscriptions)
            - Backups on disk

    Example Response:
        {
            "total_rooms": 3,
            "total_messages": 120,
            "unread_notifications": 2,
            "transactions_committed": 140,
            "transactions_failed": 4,
            "conflicts_retried": 0,
            "messages_per_second": 0.02,
            "live_subscriptions": 2
        }
    """
    uptime_seconds = (datetime.now(timezone.utc) - state.app_start_time).total_seconds()
    sent = state.chat_service.messages_sent

    if uptime_seconds > 0:
        messages_per_second = sent / uptime_seconds
    else:
        messages_per_second = 0

    doc = await state.store.read_snapshot()

    return {
        # Document
        "total_rooms": len(doc.rooms),
        "total_messages": len(doc.messages),
        "total_notifications": len(doc.notifications),
        "unread_notifications": sum(1 for n in doc.notifications if not n.read),
        "pending_requests": sum(len(r.pending_requests) for r in doc.rooms),

        # Transactions
        "transactions_committed": state.store.transactions_committed,
        "transactions_failed": state.store.transactions_failed,
        "conflicts_retried": state.store.conflicts_retried,

        # Traffic
        "messages_sent": sent,
        "uptime_hours": round(uptime_seconds / 3600, 2) if uptime_seconds > 0 else 0,
        "messages_per_second": round(messages_per_second, 2),

        # Sync
        "events_published": state.hub.events_published,
        "live_subscriptions": state.hub.subscriber_count,

        # Backups
        "backups": len(state.backup_scheduler.list_backups()),
    }
