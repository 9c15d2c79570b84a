from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Notification:
    id: UUID
    user_id: UUID
    actor_id: UUID | None
    type: str
    title: str | None
    body: str | None
    payload: dict[str, Any] | None
    read_at: datetime | None
    created_at: datetime
