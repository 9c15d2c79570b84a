from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True, slots=True)
class DirectConversationDTO:
    conversation_id: UUID
    created: bool
