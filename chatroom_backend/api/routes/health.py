# chatroom_backend/api/routes/health.py

from fastapi import APIRouter

from chatroom_backend.core import state

router = APIRouter()

@router.get("/health")
async def health():
    """
    Health check endpoint.

    Returns current system status, the store backend location, and how many
    sync pollers are currently subscribed to change events.

    Returns:
        dict: Status, store location, subscriber count
    """
    return {
        "status": "healthy",
        "store": state.store.location(),
        "subscribers": state.hub.subscriber_count,
    }


@router.get("/store/location")
async def store_location():
    """Path (file backend) or redis:// identifier (redis backend) of the document."""
    return state.chat_service.get_store_location()
