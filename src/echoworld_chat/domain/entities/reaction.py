from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class MessageReaction:
    id: UUID
    message_id: UUID
    user_id: UUID
    emoji: str
    created_at: datetime


@dataclass(slots=True)
class ReactionGroup:
    emoji: str
    count: int = 0
    user_ids: list[UUID] = field(default_factory=list)
    has_current_user: bool = False
