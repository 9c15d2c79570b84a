from __future__ import annotations

from echoworld_chat.domain.entities.reaction import MessageReaction
from echoworld_chat.infrastructure.db.models.reaction import MessageReactionModel


def model_to_entity(model: MessageReactionModel) -> MessageReaction:
    return MessageReaction(
        id=model.id,
        message_id=model.message_id,
        user_id=model.user_id,
        emoji=model.emoji,
        created_at=model.created_at,
    )


def entity_to_model(entity: MessageReaction) -> MessageReactionModel:
    return MessageReactionModel(
        id=entity.id,
        message_id=entity.message_id,
        user_id=entity.user_id,
        emoji=entity.emoji,
        created_at=entity.created_at,
    )
