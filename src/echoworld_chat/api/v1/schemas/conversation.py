from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from echoworld_chat.domain.entities.conversation import ConversationSummary


class PeerResponse(BaseModel):
    user_id: UUID
    handle: str | None
    display_name: str | None
    avatar_url: str | None


class ConversationResponse(BaseModel):
    id: UUID
    kind: str
    title: str | None
    origin_reference: UUID | None
    created_by: UUID | None
    created_at: datetime
    updated_at: datetime
    peer: PeerResponse | None = None

    @classmethod
    def from_summary(cls, summary: ConversationSummary) -> ConversationResponse:
        conv = summary.conversation
        peer = None
        if summary.peer_user_id is not None:
            peer = PeerResponse(
                user_id=summary.peer_user_id,
                handle=summary.peer_handle,
                display_name=summary.peer_display_name,
                avatar_url=summary.peer_avatar_url,
            )
        return cls(
            id=conv.id,
            kind=conv.kind,
            title=conv.title,
            origin_reference=conv.origin_reference,
            created_by=conv.created_by,
            created_at=conv.created_at,
            updated_at=conv.updated_at,
            peer=peer,
        )


class StartDirectRequest(BaseModel):
    other_user_id: UUID
    origin_reference: UUID | None = None


class DirectConversationResponse(BaseModel):
    conversation_id: UUID
    created: bool

    model_config = {"from_attributes": True}


class MemberResponse(BaseModel):
    conversation_id: UUID
    user_id: UUID
    role: str
    joined_at: datetime
    last_read_at: datetime | None
    muted: bool

    model_config = {"from_attributes": True}
