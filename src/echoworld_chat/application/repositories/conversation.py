from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from echoworld_chat.domain.entities.conversation import Conversation


class ConversationReader(Protocol):
    async def get_by_id(self, conversation_id: UUID) -> Conversation | None: ...

    async def list_for_user(self, user_id: UUID) -> list[Conversation]:
        """Conversations the user is a member of, most recently updated first."""
        ...

    async def list_shared_direct(
        self, user_id: UUID, other_user_id: UUID,
    ) -> list[Conversation]:
        """Direct conversations both users belong to, most recently updated first."""
        ...


class ConversationWriter(Protocol):
    async def create(self, conversation: Conversation) -> Conversation: ...

    async def touch(self, conversation_id: UUID, ts: datetime) -> None: ...
