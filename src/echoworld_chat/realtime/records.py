"""Wire projections of persisted rows carried by realtime broadcasts.

Inbound records are validated with these models before reaching listeners;
identifier and timestamp fields must be non-empty strings.
"""
from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, StringConstraints

from echoworld_chat.domain.entities.message import Message
from echoworld_chat.domain.entities.notification import Notification

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class MessageRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: NonEmptyStr
    conversation_id: NonEmptyStr
    sender_id: NonEmptyStr
    content: str = ""
    parent_id: str | None = None
    payload: dict[str, Any] | None = None
    created_at: NonEmptyStr
    edited_at: str | None = None
    deleted_at: str | None = None

    @property
    def client_id(self) -> str | None:
        value = (self.payload or {}).get("client_id")
        return value if isinstance(value, str) and value else None

    @classmethod
    def from_message(cls, message: Message) -> MessageRecord:
        return cls(
            id=str(message.id),
            conversation_id=str(message.conversation_id),
            sender_id=str(message.sender_id),
            content=message.content,
            parent_id=str(message.parent_id) if message.parent_id else None,
            payload=message.payload,
            created_at=message.created_at.isoformat(),
            edited_at=message.edited_at.isoformat() if message.edited_at else None,
            deleted_at=message.deleted_at.isoformat() if message.deleted_at else None,
        )


class NotificationRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: NonEmptyStr
    user_id: NonEmptyStr
    actor_id: str | None = None
    type: NonEmptyStr
    title: str | None = None
    body: str | None = None
    payload: dict[str, Any] | None = None
    read_at: str | None = None
    created_at: NonEmptyStr

    @classmethod
    def from_notification(cls, notification: Notification) -> NotificationRecord:
        return cls(
            id=str(notification.id),
            user_id=str(notification.user_id),
            actor_id=str(notification.actor_id) if notification.actor_id else None,
            type=notification.type,
            title=notification.title,
            body=notification.body,
            payload=notification.payload,
            read_at=notification.read_at.isoformat() if notification.read_at else None,
            created_at=notification.created_at.isoformat(),
        )
