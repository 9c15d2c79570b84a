from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from echoworld_chat.domain.entities.profile import Profile
from echoworld_chat.infrastructure.db.mappers import profile as mapper
from echoworld_chat.infrastructure.db.models.profile import ProfileModel


class ProfileReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_many(self, user_ids: list[UUID]) -> dict[UUID, Profile]:
        if not user_ids:
            return {}
        stmt = select(ProfileModel).where(ProfileModel.id.in_(set(user_ids)))
        result = await self._session.execute(stmt)
        return {m.id: mapper.model_to_entity(m) for m in result.scalars().all()}
