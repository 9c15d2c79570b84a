from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from echoworld_chat.domain.entities.member import ConversationMember
from echoworld_chat.infrastructure.db.mappers import member as mapper
from echoworld_chat.infrastructure.db.models.member import ConversationMemberModel


class MemberReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(
        self, conversation_id: UUID, user_id: UUID,
    ) -> ConversationMember | None:
        model = await self._session.get(ConversationMemberModel, (conversation_id, user_id))
        return mapper.model_to_entity(model) if model else None

    async def list_members(self, conversation_id: UUID) -> list[ConversationMember]:
        stmt = (
            select(ConversationMemberModel)
            .where(ConversationMemberModel.conversation_id == conversation_id)
            .order_by(ConversationMemberModel.joined_at, ConversationMemberModel.user_id)
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]

    async def list_for_user(self, user_id: UUID) -> list[ConversationMember]:
        stmt = select(ConversationMemberModel).where(
            ConversationMemberModel.user_id == user_id,
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]


class MemberWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add_many(self, members: list[ConversationMember]) -> None:
        if not members:
            return
        stmt = (
            pg_insert(ConversationMemberModel)
            .values([mapper.entity_to_values(m) for m in members])
            .on_conflict_do_nothing(index_elements=["conversation_id", "user_id"])
        )
        await self._session.execute(stmt)

    async def set_last_read(
        self, conversation_id: UUID, user_id: UUID, ts: datetime,
    ) -> None:
        stmt = (
            update(ConversationMemberModel)
            .where(
                ConversationMemberModel.conversation_id == conversation_id,
                ConversationMemberModel.user_id == user_id,
            )
            .values(last_read_at=ts)
        )
        await self._session.execute(stmt)
