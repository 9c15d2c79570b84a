from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel


class NotificationResponse(BaseModel):
    id: UUID
    user_id: UUID
    actor_id: UUID | None
    type: str
    title: str | None
    body: str | None
    payload: dict[str, Any] | None
    read_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}
