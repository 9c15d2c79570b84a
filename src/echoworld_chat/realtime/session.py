"""Per-user realtime session: one message channel and one notification channel."""
from __future__ import annotations

import logging
from typing import Any, Callable, Coroutine, Iterable, Protocol, TypeVar
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError

from echoworld_chat.application.callbacks import invoke
from echoworld_chat.config import settings
from echoworld_chat.domain.value_objects.enums import RealtimeEvent
from echoworld_chat.realtime.broadcaster import RealtimeBroadcaster
from echoworld_chat.realtime.channels import message_channel, notification_channel
from echoworld_chat.realtime.records import MessageRecord, NotificationRecord

logger = logging.getLogger(__name__)

OnEventCallback = Callable[[str, dict[str, Any]], Coroutine[Any, Any, None]]
MessageListener = Callable[[MessageRecord], Any]
NotificationListener = Callable[[NotificationRecord], Any]

L = TypeVar("L")


class Subscriber(Protocol):
    async def start(self) -> None: ...
    async def stop(self) -> None: ...


SubscriberFactory = Callable[[str, OnEventCallback], Subscriber]


class RealtimeSession:
    """Owns the channel pair of the signed-in user.

    Starting for another user tears the previous subscription down first, so
    at most one user's channels are open per session. Delivery is a single
    transport hop with no acknowledgement or replay.
    """

    def __init__(
        self,
        subscriber_factory: SubscriberFactory,
        broadcaster: RealtimeBroadcaster | None = None,
        *,
        prefix: str = settings.REALTIME_CHANNEL_PREFIX,
    ) -> None:
        self._subscriber_factory = subscriber_factory
        self._broadcaster = broadcaster
        self._prefix = prefix
        self._user_id: str | None = None
        self._subscribers: list[Subscriber] = []
        # dicts used as insertion-ordered sets
        self._message_listeners: dict[MessageListener, None] = {}
        self._notification_listeners: dict[NotificationListener, None] = {}

    @property
    def user_id(self) -> str | None:
        return self._user_id

    @property
    def started(self) -> bool:
        return bool(self._subscribers)

    async def start(self, user_id: UUID | str) -> None:
        uid = str(user_id or "").strip()
        if not uid:
            return
        channels = [
            (message_channel(self._prefix, uid), self._on_message_event),
            (notification_channel(self._prefix, uid), self._on_notification_event),
        ]
        if self._user_id == uid and len(self._subscribers) == len(channels):
            return

        await self.stop()
        self._user_id = uid

        subscribers = [self._subscriber_factory(name, cb) for name, cb in channels]
        started: list[Subscriber] = []
        for subscriber in subscribers:
            try:
                await subscriber.start()
            except Exception:
                logger.warning("Realtime subscribe failed for user %s", uid, exc_info=True)
            else:
                started.append(subscriber)
        self._subscribers = started
        if not started:
            self._user_id = None
            return
        logger.info("Realtime session started for user %s", uid)

    async def stop(self) -> None:
        subscribers, self._subscribers = self._subscribers, []
        user_id, self._user_id = self._user_id, None
        for subscriber in subscribers:
            try:
                await subscriber.stop()
            except Exception:
                logger.warning("Realtime unsubscribe failed", exc_info=True)
        if subscribers:
            logger.info("Realtime session stopped for user %s", user_id)

    def on_message(self, listener: MessageListener) -> Callable[[], None]:
        return _register(self._message_listeners, listener)

    def on_notification(self, listener: NotificationListener) -> Callable[[], None]:
        return _register(self._notification_listeners, listener)

    async def broadcast(
        self,
        record: MessageRecord | NotificationRecord,
        recipients: Iterable[UUID | str] = (),
    ) -> None:
        if self._broadcaster is None:
            logger.debug("No broadcaster configured, dropping %s", record.id)
            return
        await self._broadcaster.broadcast(record, recipients)

    async def _on_message_event(self, event_type: str, data: dict[str, Any]) -> None:
        if event_type != RealtimeEvent.MESSAGE_INSERT:
            return
        try:
            record = MessageRecord.model_validate(data)
        except PydanticValidationError:
            logger.debug("Dropping malformed message record: %r", data)
            return
        await _dispatch(self._message_listeners, record)

    async def _on_notification_event(self, event_type: str, data: dict[str, Any]) -> None:
        if event_type != RealtimeEvent.NOTIFICATION_INSERT:
            return
        try:
            record = NotificationRecord.model_validate(data)
        except PydanticValidationError:
            logger.debug("Dropping malformed notification record: %r", data)
            return
        if record.user_id != self._user_id:
            logger.debug("Dropping notification %s addressed to another user", record.id)
            return
        await _dispatch(self._notification_listeners, record)


def _register(listeners: dict[L, None], listener: L) -> Callable[[], None]:
    listeners[listener] = None

    def unregister() -> None:
        listeners.pop(listener, None)

    return unregister


async def _dispatch(listeners: dict[Any, None], record: Any) -> None:
    # snapshot: listeners may unregister themselves while being called
    for listener in list(listeners):
        try:
            await invoke(listener, record)
        except Exception:
            logger.exception("Realtime listener failed for record %s", record.id)
