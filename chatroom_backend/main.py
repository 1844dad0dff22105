# chatroom_backend/main.py

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chatroom_backend.core import state
from chatroom_backend.core.config import settings
from chatroom_backend.core.errors import register_exception_handlers
from chatroom_backend.core.logging import setup_logging, get_logger
from chatroom_backend.api.routes import root, health, metrics, rooms, messages, notifications

# Configure logging first
setup_logging()
logger = get_logger(__name__)

# FastAPI app
app = FastAPI(title="Chatrooms")

# CORS (relaxed for now – tighten in prod)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# REST routes
app.include_router(root.router)
app.include_router(health.router)
app.include_router(metrics.router)
app.include_router(rooms.router)
app.include_router(messages.router)
app.include_router(notifications.router)


@app.on_event("startup")
async def startup_event():
    logger.info("🚀 Application starting - store at %s", state.store.location())

    if settings.BACKUPS_ENABLED:
        state.backup_scheduler.start()
        logger.info(
            "Backups every %.0fs into %s (keeping %d)",
            settings.BACKUP_INTERVAL_SECONDS,
            settings.BACKUP_DIR,
            settings.BACKUP_RETENTION,
        )


@app.on_event("shutdown")
async def on_shutdown():
    await state.backup_scheduler.stop()
    await state.store.close()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("chatroom_backend.main:app", host="0.0.0.0", port=8000)
