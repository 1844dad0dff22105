# chatroom_backend/core/errors.py

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

# ============================================================================
# DOMAIN ERRORS
# ============================================================================


class ChatError(Exception):
    """Base class for every failure the command boundary reports to callers."""

    code = "chat_error"
    status_code = 400

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.__class__.__doc__ or self.code)

    @property
    def message(self) -> str:
        return str(self)

    def to_result(self) -> dict:
        return {"success": False, "error": self.message, "code": self.code}


class RoomNotFoundError(ChatError):
    """Room not found"""

    code = "room_not_found"
    status_code = 404

    def __init__(self, room_id: str) -> None:
        self.room_id = room_id
        super().__init__(f"Room not found: {room_id}")


class DuplicateRoomError(ChatError):
    """Room already exists"""

    code = "duplicate_room"
    status_code = 409

    def __init__(self, room_id: str) -> None:
        self.room_id = room_id
        super().__init__(f"Room already exists: {room_id}")


class AlreadyPendingError(ChatError):
    """Join request already pending"""

    code = "already_pending"
    status_code = 409

    def __init__(self, room_id: str, username: str) -> None:
        self.room_id = room_id
        self.username = username
        super().__init__(f"{username} already has a pending request for {room_id}")


class NotAMemberError(ChatError):
    """User is not a member of the room"""

    code = "not_a_member"
    status_code = 403

    def __init__(self, room_id: str, username: str) -> None:
        self.room_id = room_id
        self.username = username
        super().__init__(f"{username} is not a member of {room_id}")


class MessageTooLongError(ChatError):
    """Message too long"""

    code = "message_too_long"
    status_code = 413

    def __init__(self, length: int, limit: int) -> None:
        self.length = length
        self.limit = limit
        super().__init__(f"Message too long ({length} > {limit} characters)")


class PermissionDeniedError(ChatError):
    """Not allowed to manage join requests for this room"""

    code = "permission_denied"
    status_code = 403


class ValidationError(ChatError):
    """Invalid input"""

    code = "validation_error"
    status_code = 422


class StoreUnavailableError(ChatError):
    """Document store unavailable"""

    code = "store_unavailable"
    status_code = 503


INTERNAL_ERROR_CODE = "internal_error"

STATUS_BY_CODE = {
    cls.code: cls.status_code
    for cls in (
        RoomNotFoundError,
        DuplicateRoomError,
        AlreadyPendingError,
        NotAMemberError,
        MessageTooLongError,
        PermissionDeniedError,
        ValidationError,
        StoreUnavailableError,
    )
}


# ============================================================================
# HTTP EXCEPTION HANDLERS
# ============================================================================


def error_response(status: int, code: str, message: str, details=None) -> JSONResponse:
    body = {"success": False, "error": message, "code": code}
    if details is not None:
        body["details"] = details
    return JSONResponse(body, status_code=status)


def register_exception_handlers(app) -> None:
    """
    Make every failure leave the API in the same ``{"success": false}`` shape
    the command boundary uses, including body validation and 404 routing.
    """

    @app.exception_handler(ChatError)
    async def _chat_exc(request: Request, exc: ChatError):
        logger.info("Command failed on %s: %s", request.url.path, exc)
        return error_response(exc.status_code, exc.code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def _http_exc(request: Request, exc: StarletteHTTPException):
        message = str(exc.detail) if exc.detail else "Request failed"
        return error_response(exc.status_code, f"http_{exc.status_code}", message)

    @app.exception_handler(RequestValidationError)
    async def _val_exc(request: Request, exc: RequestValidationError):
        return error_response(
            422,
            ValidationError.code,
            "Malformed request",
            details=[
                {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
                for err in exc.errors()
            ],
        )
