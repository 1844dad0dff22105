# chatroom_backend/api/routes/notifications.py

from fastapi import APIRouter

from chatroom_backend.api.routes.utils import respond
from chatroom_backend.core import state
from chatroom_backend.models.models import AddNotificationRequest

router = APIRouter()


@router.get("/notifications/{username}")
async def list_notifications(username: str):
    """Unread notifications addressed to ``username``, in arrival order."""
    return await state.chat_service.list_notifications(username)


@router.post("/notifications")
async def add_notification(request: AddNotificationRequest):
    result = await state.chat_service.add_notification(
        request.from_user,
        request.to_user,
        request.type,
        request.room_id,
        message=request.message,
    )
    return respond(result, success_status=201)


@router.post("/notifications/{notification_id}/read")
async def mark_notification_read(notification_id: str):
    """Mark one notification read. Unknown or already-read ids are a no-op."""
    return respond(await state.chat_service.mark_notification_read(notification_id))


@router.post("/notifications/{username}/read-all")
async def mark_all_notifications_read(username: str):
    return respond(await state.chat_service.mark_all_notifications_read(username))
