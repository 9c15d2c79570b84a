from __future__ import annotations

from typing import Protocol
from uuid import UUID

from echoworld_chat.domain.entities.reaction import MessageReaction


class ReactionReader(Protocol):
    async def find(
        self, message_id: UUID, user_id: UUID, emoji: str,
    ) -> MessageReaction | None: ...

    async def list_for_messages(
        self, message_ids: list[UUID],
    ) -> list[MessageReaction]: ...


class ReactionWriter(Protocol):
    async def add(self, reaction: MessageReaction) -> MessageReaction: ...

    async def remove(self, reaction_id: UUID) -> None: ...
