"""Per-user broadcast channel names."""
from __future__ import annotations

from uuid import UUID


def message_channel(prefix: str, user_id: UUID | str) -> str:
    return f"{prefix}:user:{user_id}:messages"


def notification_channel(prefix: str, user_id: UUID | str) -> str:
    return f"{prefix}:user:{user_id}:notifications"
