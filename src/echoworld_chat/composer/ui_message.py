from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from echoworld_chat.domain.entities.message import Message
from echoworld_chat.domain.value_objects.enums import MessageStatus
from echoworld_chat.realtime.records import MessageRecord


@dataclass(frozen=True, slots=True)
class UiMessage:
    """Client-side projection of a message, including not-yet-confirmed ones.

    Identifiers and timestamps are kept in their wire (string) form.
    """

    id: str | None
    conversation_id: str
    sender_id: str
    content: str
    created_at: str
    status: MessageStatus = MessageStatus.SENT
    client_id: str | None = None
    optimistic: bool = False
    parent_id: str | None = None
    payload: dict[str, Any] | None = None
    edited_at: str | None = None
    deleted_at: str | None = None
    error: str | None = None
    retry_count: int = 0
    parent_message: UiMessage | None = None

    @classmethod
    def from_message(
        cls,
        message: Message,
        *,
        parent_message: UiMessage | None = None,
    ) -> UiMessage:
        return cls.from_record(
            MessageRecord.from_message(message), parent_message=parent_message,
        )

    @classmethod
    def from_record(
        cls,
        record: MessageRecord,
        *,
        parent_message: UiMessage | None = None,
    ) -> UiMessage:
        parent_id = record.parent_id or (record.payload or {}).get("parent_id")
        return cls(
            id=record.id,
            conversation_id=record.conversation_id,
            sender_id=record.sender_id,
            content=record.content,
            created_at=record.created_at,
            client_id=record.client_id,
            parent_id=parent_id,
            payload=record.payload,
            edited_at=record.edited_at,
            deleted_at=record.deleted_at,
            parent_message=parent_message,
        )
