from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from echoworld_chat.domain.entities.reaction import MessageReaction
from echoworld_chat.infrastructure.db.mappers import reaction as mapper
from echoworld_chat.infrastructure.db.models.reaction import MessageReactionModel


class ReactionReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find(
        self, message_id: UUID, user_id: UUID, emoji: str,
    ) -> MessageReaction | None:
        stmt = select(MessageReactionModel).where(
            MessageReactionModel.message_id == message_id,
            MessageReactionModel.user_id == user_id,
            MessageReactionModel.emoji == emoji,
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def list_for_messages(self, message_ids: list[UUID]) -> list[MessageReaction]:
        if not message_ids:
            return []
        stmt = (
            select(MessageReactionModel)
            .where(MessageReactionModel.message_id.in_(set(message_ids)))
            .order_by(MessageReactionModel.created_at)
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]


class ReactionWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, reaction: MessageReaction) -> MessageReaction:
        model = mapper.entity_to_model(reaction)
        self._session.add(model)
        await self._session.flush()
        return mapper.model_to_entity(model)

    async def remove(self, reaction_id: UUID) -> None:
        await self._session.execute(
            delete(MessageReactionModel).where(MessageReactionModel.id == reaction_id),
        )
