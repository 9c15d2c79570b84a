from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from echoworld_chat.domain.entities.notification import Notification


class NotificationReader(Protocol):
    async def list_for_user(
        self, user_id: UUID, *, limit: int = 50,
    ) -> list[Notification]: ...

    async def count_unread(self, user_id: UUID) -> int: ...


class NotificationWriter(Protocol):
    async def create(self, notification: Notification) -> Notification: ...

    async def mark_read(
        self, notification_id: UUID, user_id: UUID, ts: datetime,
    ) -> None: ...

    async def mark_all_read(self, user_id: UUID, ts: datetime) -> None: ...
