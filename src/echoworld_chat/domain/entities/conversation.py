from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Conversation:
    id: UUID
    kind: str
    title: str | None
    origin_reference: UUID | None
    created_by: UUID | None
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True, slots=True)
class ConversationSummary:
    """Conversation enriched with the other member's public profile (direct only)."""

    conversation: Conversation
    peer_user_id: UUID | None = None
    peer_handle: str | None = None
    peer_display_name: str | None = None
    peer_avatar_url: str | None = None
