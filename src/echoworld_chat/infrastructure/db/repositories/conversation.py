from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from echoworld_chat.domain.entities.conversation import Conversation
from echoworld_chat.domain.value_objects.enums import ConversationKind
from echoworld_chat.infrastructure.db.mappers import conversation as mapper
from echoworld_chat.infrastructure.db.models.conversation import ConversationModel
from echoworld_chat.infrastructure.db.models.member import ConversationMemberModel


class ConversationReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, conversation_id: UUID) -> Conversation | None:
        result = await self._session.get(ConversationModel, conversation_id)
        return mapper.model_to_entity(result) if result else None

    async def list_for_user(self, user_id: UUID) -> list[Conversation]:
        stmt = (
            select(ConversationModel)
            .join(
                ConversationMemberModel,
                ConversationMemberModel.conversation_id == ConversationModel.id,
            )
            .where(ConversationMemberModel.user_id == user_id)
            .order_by(ConversationModel.updated_at.desc(), ConversationModel.id)
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]

    async def list_shared_direct(
        self, user_id: UUID, other_user_id: UUID,
    ) -> list[Conversation]:
        mine = aliased(ConversationMemberModel)
        theirs = aliased(ConversationMemberModel)
        stmt = (
            select(ConversationModel)
            .join(mine, mine.conversation_id == ConversationModel.id)
            .join(theirs, theirs.conversation_id == ConversationModel.id)
            .where(
                ConversationModel.type == ConversationKind.DIRECT,
                mine.user_id == user_id,
                theirs.user_id == other_user_id,
            )
            .order_by(ConversationModel.updated_at.desc(), ConversationModel.id)
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]


class ConversationWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, conversation: Conversation) -> Conversation:
        model = mapper.entity_to_model(conversation)
        self._session.add(model)
        await self._session.flush()
        return mapper.model_to_entity(model)

    async def touch(self, conversation_id: UUID, ts: datetime) -> None:
        stmt = (
            update(ConversationModel)
            .where(ConversationModel.id == conversation_id)
            .values(updated_at=ts)
        )
        await self._session.execute(stmt)
