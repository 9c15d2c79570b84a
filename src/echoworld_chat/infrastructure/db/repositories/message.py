from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from echoworld_chat.domain.entities.message import Message
from echoworld_chat.infrastructure.db.mappers import message as mapper
from echoworld_chat.infrastructure.db.models.message import MessageModel


class MessageReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, message_id: UUID) -> Message | None:
        model = await self._session.get(MessageModel, message_id)
        return mapper.model_to_entity(model) if model else None

    async def list_messages(
        self,
        conversation_id: UUID,
        *,
        limit: int = 50,
    ) -> list[Message]:
        # newest page, returned oldest-first
        latest = (
            select(MessageModel)
            .where(
                MessageModel.conversation_id == conversation_id,
                MessageModel.deleted_at.is_(None),
            )
            .order_by(MessageModel.created_at.desc(), MessageModel.id.desc())
            .limit(limit)
        )
        result = await self._session.execute(latest)
        rows = list(result.scalars().all())
        rows.reverse()
        return [mapper.model_to_entity(m) for m in rows]

    async def count_unread(
        self,
        conversation_id: UUID,
        *,
        since: datetime,
        exclude_sender_id: UUID,
    ) -> int:
        stmt = select(func.count()).select_from(MessageModel).where(
            MessageModel.conversation_id == conversation_id,
            MessageModel.created_at > since,
            MessageModel.sender_id != exclude_sender_id,
            MessageModel.deleted_at.is_(None),
        )
        result = await self._session.execute(stmt)
        return int(result.scalar_one())


class MessageWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_if_not_exists(self, message: Message) -> tuple[Message, bool]:
        """Insert message idempotently. Returns (message, created_flag)."""
        stmt = (
            pg_insert(MessageModel)
            .values(**mapper.entity_to_values(message))
            .on_conflict_do_nothing(constraint="uq_message_idempotency")
            .returning(MessageModel)
        )
        result = await self._session.execute(stmt)
        row = result.scalar_one_or_none()

        if row is not None:
            return mapper.model_to_entity(row), True

        # conflict on client_id, fetch the stored row
        existing = await self.get_by_client_id(
            message.conversation_id,
            message.sender_id,
            message.client_id,  # type: ignore[arg-type]
        )
        assert existing is not None
        return existing, False

    async def get_by_client_id(
        self,
        conversation_id: UUID,
        sender_id: UUID,
        client_id: str,
    ) -> Message | None:
        stmt = select(MessageModel).where(
            MessageModel.conversation_id == conversation_id,
            MessageModel.sender_id == sender_id,
            MessageModel.client_id == client_id,
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None
