# chatroom_backend/api/routes/rooms.py

from typing import List

from fastapi import APIRouter

from chatroom_backend.api.routes.utils import respond
from chatroom_backend.core import state
from chatroom_backend.models.models import (
    CreateRoomRequest,
    JoinRoomRequest,
    ResolveJoinRequest,
    Room,
)

router = APIRouter()

# ============================================================================
# ROOM ENDPOINTS
# ============================================================================

@router.get("/rooms", response_model=List[Room])
async def list_rooms():
    """
    List all rooms in creation order.

    Returns:
        List[Room]: id, creator, members and pending requests of every room
    """
    return await state.chat_service.list_rooms()


@router.post("/rooms")
async def create_room(request: CreateRoomRequest):
    """
    Create a new chatroom.

    If ``name`` is omitted an id like ``Room-1733000000000`` is generated.
    The creator is the first member.

    Returns:
        201 {"success": true, "room": {...}}
        409 when a room with that name exists
    """
    result = await state.chat_service.create_room(request.name, request.creator_username)
    return respond(result, success_status=201)


@router.post("/rooms/{room_id}/join")
async def request_join(room_id: str, request: JoinRoomRequest):
    """
    Ask to join a room.

    Members (and the creator) are let in immediately. Anyone else becomes
    pending and the creator gets a JOIN_REQUEST notification.

    Returns:
        {"success": true, "immediate": false,
         "notification": {"creator_username": "alice", "joining_username": "bob", "id": "..."}}
        409 when a request is already pending
    """
    result = await state.chat_service.request_join(room_id, request.username)
    return respond(result)


@router.post("/rooms/{room_id}/approve")
async def approve_join(room_id: str, request: ResolveJoinRequest):
    result = await state.chat_service.approve_join(
        request.notification_id, request.username, room_id, actor=request.actor
    )
    return respond(result)


@router.post("/rooms/{room_id}/reject")
async def reject_join(room_id: str, request: ResolveJoinRequest):
    result = await state.chat_service.reject_join(
        request.notification_id, request.username, room_id, actor=request.actor
    )
    return respond(result)
