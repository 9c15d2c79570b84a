from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from echoworld_chat.domain.entities.member import ConversationMember


class MemberReader(Protocol):
    async def get(
        self, conversation_id: UUID, user_id: UUID,
    ) -> ConversationMember | None: ...

    async def list_members(
        self, conversation_id: UUID,
    ) -> list[ConversationMember]: ...

    async def list_for_user(self, user_id: UUID) -> list[ConversationMember]: ...


class MemberWriter(Protocol):
    async def add_many(self, members: list[ConversationMember]) -> None: ...

    async def set_last_read(
        self, conversation_id: UUID, user_id: UUID, ts: datetime,
    ) -> None: ...
