from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from echoworld_chat.application.dto.principal import Principal
from echoworld_chat.application.policies.permissions import require_principal
from echoworld_chat.application.uow import UnitOfWork
from echoworld_chat.domain.entities.notification import Notification
from echoworld_chat.realtime.broadcaster import RealtimeBroadcaster
from echoworld_chat.realtime.records import NotificationRecord

logger = logging.getLogger(__name__)


async def create_notification(
    user_id: uuid.UUID,
    notification_type: str,
    uow: UnitOfWork,
    *,
    actor_id: uuid.UUID | None = None,
    title: str | None = None,
    body: str | None = None,
    payload: dict[str, Any] | None = None,
    broadcaster: RealtimeBroadcaster | None = None,
) -> Notification:
    """Persist a notification, commit, then publish it on the recipient's channel."""
    notification = await uow.notifications_w.create(
        Notification(
            id=uuid.uuid4(),
            user_id=user_id,
            actor_id=actor_id,
            type=notification_type,
            title=title,
            body=body,
            payload=payload,
            read_at=None,
            created_at=datetime.now(timezone.utc),
        )
    )
    await uow.commit()
    logger.debug("Notification %s (%s) for user %s", notification.id, notification_type, user_id)

    if broadcaster is not None:
        await broadcaster.broadcast(NotificationRecord.from_notification(notification))
    return notification


async def list_notifications(
    principal: Principal | None,
    limit: int,
    uow: UnitOfWork,
) -> list[Notification]:
    principal = require_principal(principal)
    return await uow.notifications.list_for_user(principal.user_id, limit=limit)


async def count_unread(principal: Principal | None, uow: UnitOfWork) -> int:
    principal = require_principal(principal)
    return await uow.notifications.count_unread(principal.user_id)


async def mark_read(
    notification_id: uuid.UUID,
    principal: Principal | None,
    uow: UnitOfWork,
) -> None:
    principal = require_principal(principal)
    await uow.notifications_w.mark_read(
        notification_id, principal.user_id, datetime.now(timezone.utc),
    )
    await uow.commit()


async def mark_all_read(principal: Principal | None, uow: UnitOfWork) -> None:
    principal = require_principal(principal)
    await uow.notifications_w.mark_all_read(principal.user_id, datetime.now(timezone.utc))
    await uow.commit()
