# chatroom_backend/api/routes/messages.py
from typing import List

from fastapi import APIRouter

from chatroom_backend.api.routes.utils import respond
from chatroom_backend.core import state
from chatroom_backend.models.models import Message, SendMessageRequest

# ============================================================================
# MESSAGE ENDPOINTS
# ============================================================================

router = APIRouter()


@router.post("/rooms/{room_id}/messages")
async def send_message(room_id: str, request: SendMessageRequest):
    """
    Append a message to a room.

    Flow:
        1. Validate fields and length (MAX_MESSAGE_LENGTH, 1000 by default)
        2. Check the sender is a member of the room
        3. Append with the current time and the next sequence number
        4. Wake pollers watching the room

    Returns:
        {"success": true, "timestamp": 1733000000000, "seq": 42}
        403 for non-members, 404 for unknown rooms, 413 when too long
    """
    result = await state.chat_service.send_message(room_id, request.username, request.text)
    return respond(result, success_status=201)


@router.get("/rooms/{room_id}/messages", response_model=List[Message])
async def list_messages(room_id: str):
    """Messages of a room, oldest first. Unknown rooms return []."""
    return await state.chat_service.list_messages(room_id)
