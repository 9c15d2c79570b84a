"""Explicit publish of freshly persisted rows to the per-user channels."""
from __future__ import annotations

import logging
from typing import Iterable
from uuid import UUID

from echoworld_chat.application.ports.bus import EventPublisher
from echoworld_chat.config import settings
from echoworld_chat.domain.value_objects.enums import RealtimeEvent
from echoworld_chat.realtime.channels import message_channel, notification_channel
from echoworld_chat.realtime.records import MessageRecord, NotificationRecord

logger = logging.getLogger(__name__)


class RealtimeBroadcaster:
    """Best-effort publisher. Failures are logged and never raised.

    The row is already durable when this runs, so a dropped broadcast only
    delays the live update until the next reload.
    """

    def __init__(
        self,
        publisher: EventPublisher,
        *,
        prefix: str = settings.REALTIME_CHANNEL_PREFIX,
    ) -> None:
        self._publisher = publisher
        self._prefix = prefix

    async def broadcast(
        self,
        record: MessageRecord | NotificationRecord,
        recipients: Iterable[UUID | str] = (),
    ) -> int:
        """Publish the record; return how many channels accepted it."""
        if isinstance(record, NotificationRecord):
            event_type = RealtimeEvent.NOTIFICATION_INSERT
            channels = [notification_channel(self._prefix, record.user_id)]
        else:
            event_type = RealtimeEvent.MESSAGE_INSERT
            unique = dict.fromkeys(str(r) for r in recipients)
            channels = [message_channel(self._prefix, r) for r in unique]

        payload = {"event_type": event_type.value, **record.model_dump(mode="json")}
        delivered = 0
        for channel in channels:
            try:
                await self._publisher.publish(channel, payload)
                delivered += 1
            except Exception:
                logger.warning(
                    "Realtime broadcast of %s %s to %s failed",
                    event_type, record.id, channel, exc_info=True,
                )
        return delivered
