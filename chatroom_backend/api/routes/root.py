# chatroom_backend/api/routes/root.py

from fastapi import APIRouter

router = APIRouter()


@router.get("/")
async def root():
    """
    Root endpoint - API information.

    Returns basic info about the API and its features.
    """
    return {
        "message": "Chatrooms - membership workflow over a shared document store",
        "version": "1.0",
        "sync_model": "client polling, woken early by in-process change events",
        "features": ["rooms", "join_requests", "approvals", "messages", "notifications", "backups"],
        "endpoints": {
            "rooms": "/rooms",
            "join": "/rooms/{room_id}/join",
            "approve": "/rooms/{room_id}/approve",
            "reject": "/rooms/{room_id}/reject",
            "messages": "/rooms/{room_id}/messages",
            "notifications": "/notifications/{username}",
            "store": "/store/location",
            "health": "/health",
            "metrics": "/metrics",
        },
    }
