from __future__ import annotations

from typing import Protocol
from uuid import UUID

from echoworld_chat.domain.entities.profile import Profile


class ProfileReader(Protocol):
    async def get_many(self, user_ids: list[UUID]) -> dict[UUID, Profile]: ...
