from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from echoworld_chat.domain.entities.message import Message


class MessageReader(Protocol):
    async def get_by_id(self, message_id: UUID) -> Message | None: ...

    async def list_messages(
        self,
        conversation_id: UUID,
        *,
        limit: int = 50,
    ) -> list[Message]:
        """Non-deleted messages in ascending creation order."""
        ...

    async def count_unread(
        self,
        conversation_id: UUID,
        *,
        since: datetime,
        exclude_sender_id: UUID,
    ) -> int: ...


class MessageWriter(Protocol):
    async def create_if_not_exists(self, message: Message) -> tuple[Message, bool]:
        """Insert message. Return (message, created). If conflict on client_id → return existing."""
        ...

    async def get_by_client_id(
        self,
        conversation_id: UUID,
        sender_id: UUID,
        client_id: str,
    ) -> Message | None: ...
