from __future__ import annotations

from echoworld_chat.domain.entities.conversation import Conversation
from echoworld_chat.infrastructure.db.models.conversation import ConversationModel


def model_to_entity(model: ConversationModel) -> Conversation:
    return Conversation(
        id=model.id,
        kind=model.type,
        title=model.title,
        origin_reference=model.origin_echo_id,
        created_by=model.created_by,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def entity_to_model(entity: Conversation) -> ConversationModel:
    return ConversationModel(
        id=entity.id,
        type=entity.kind,
        title=entity.title,
        origin_echo_id=entity.origin_reference,
        created_by=entity.created_by,
        created_at=entity.created_at,
        updated_at=entity.updated_at,
    )
