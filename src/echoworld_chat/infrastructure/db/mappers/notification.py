from __future__ import annotations

from echoworld_chat.domain.entities.notification import Notification
from echoworld_chat.infrastructure.db.models.notification import NotificationModel


def model_to_entity(model: NotificationModel) -> Notification:
    return Notification(
        id=model.id,
        user_id=model.user_id,
        actor_id=model.actor_id,
        type=model.type,
        title=model.title,
        body=model.body,
        payload=model.payload,
        read_at=model.read_at,
        created_at=model.created_at,
    )


def entity_to_model(entity: Notification) -> NotificationModel:
    return NotificationModel(
        id=entity.id,
        user_id=entity.user_id,
        actor_id=entity.actor_id,
        type=entity.type,
        title=entity.title,
        body=entity.body,
        payload=entity.payload,
        read_at=entity.read_at,
        created_at=entity.created_at,
    )
