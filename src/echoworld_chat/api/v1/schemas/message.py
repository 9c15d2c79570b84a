from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class SendMessageRequest(BaseModel):
    content: str = Field(max_length=4000)
    client_id: str | None = Field(default=None, max_length=64)
    parent_id: UUID | None = None


class MessageResponse(BaseModel):
    id: UUID
    conversation_id: UUID
    sender_id: UUID
    content: str
    parent_id: UUID | None
    payload: dict[str, Any] | None
    client_id: str | None
    created_at: datetime
    edited_at: datetime | None
    deleted_at: datetime | None

    model_config = {"from_attributes": True}


class ToggleReactionRequest(BaseModel):
    emoji: str


class ReactionResponse(BaseModel):
    id: UUID
    message_id: UUID
    user_id: UUID
    emoji: str
    created_at: datetime

    model_config = {"from_attributes": True}


class ToggleReactionResponse(BaseModel):
    added: bool
    reaction: ReactionResponse | None = None


class ReactionGroupResponse(BaseModel):
    emoji: str
    count: int
    user_ids: list[UUID]
    has_current_user: bool

    model_config = {"from_attributes": True}


class MessageReactionsResponse(BaseModel):
    message_id: UUID
    groups: list[ReactionGroupResponse]
