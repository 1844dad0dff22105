# chatroom_backend/services/policy.py
from __future__ import annotations

from typing import Protocol

from chatroom_backend.models.models import Room


class ApprovalPolicy(Protocol):
    """Decides who may approve or reject join requests for a room."""

    def can_approve(self, room: Room, user: str) -> bool: ...


class CreatorApprovalPolicy:
    """Only the room's creator manages its join requests."""

    def can_approve(self, room: Room, user: str) -> bool:
        return user == room.created_by
