from __future__ import annotations

from echoworld_chat.domain.entities.message import Message
from echoworld_chat.infrastructure.db.models.message import MessageModel


def model_to_entity(model: MessageModel) -> Message:
    return Message(
        id=model.id,
        conversation_id=model.conversation_id,
        sender_id=model.sender_id,
        content=model.content,
        parent_id=model.parent_id,
        payload=model.payload,
        client_id=model.client_id,
        created_at=model.created_at,
        edited_at=model.edited_at,
        deleted_at=model.deleted_at,
    )


def entity_to_values(entity: Message) -> dict:
    return {
        "id": entity.id,
        "conversation_id": entity.conversation_id,
        "sender_id": entity.sender_id,
        "content": entity.content,
        "parent_id": entity.parent_id,
        "payload": entity.payload,
        "client_id": entity.client_id,
        "created_at": entity.created_at,
    }
