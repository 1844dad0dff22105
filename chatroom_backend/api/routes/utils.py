# chatroom_backend/api/routes/utils.py

from __future__ import annotations

from fastapi.responses import JSONResponse

from chatroom_backend.core.errors import INTERNAL_ERROR_CODE, STATUS_BY_CODE


def respond(result: dict, success_status: int = 200) -> JSONResponse:
    """
    Turn a command result into an HTTP response.

    The body is always the command's own result dict; only the status code
    is derived from it, so polling clients can read ``success`` either way.

    Example:
        {"success": false, "error": "Room not found: Room-9", "code": "room_not_found"}
        -> 404
    """
    if result.get("success", False):
        return JSONResponse(result, status_code=success_status)
    code = result.get("code", INTERNAL_ERROR_CODE)
    return JSONResponse(result, status_code=STATUS_BY_CODE.get(code, 500))
