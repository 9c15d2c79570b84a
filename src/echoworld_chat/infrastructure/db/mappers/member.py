from __future__ import annotations

from echoworld_chat.domain.entities.member import ConversationMember
from echoworld_chat.infrastructure.db.models.member import ConversationMemberModel


def model_to_entity(model: ConversationMemberModel) -> ConversationMember:
    return ConversationMember(
        conversation_id=model.conversation_id,
        user_id=model.user_id,
        role=model.role,
        joined_at=model.joined_at,
        last_read_at=model.last_read_at,
        muted=model.muted,
    )


def entity_to_values(entity: ConversationMember) -> dict:
    return {
        "conversation_id": entity.conversation_id,
        "user_id": entity.user_id,
        "role": entity.role,
        "joined_at": entity.joined_at,
        "last_read_at": entity.last_read_at,
        "muted": entity.muted,
    }
