from __future__ import annotations

import logging
import uuid

from echoworld_chat.application.exceptions import AppError
from echoworld_chat.composer.composer import Composer
from echoworld_chat.composer.timeline import MessageTimeline
from echoworld_chat.composer.ui_message import UiMessage
from echoworld_chat.config import settings
from echoworld_chat.realtime.records import MessageRecord
from echoworld_chat.realtime.session import RealtimeSession
from echoworld_chat.services.store import MessagingStore

logger = logging.getLogger(__name__)


class ConversationView:
    """Binds a timeline and a composer to the store and the realtime session.

    Loads are tagged with a generation number; a load that finishes after the
    view switched conversations (or was closed) is discarded.
    """

    def __init__(
        self,
        store: MessagingStore,
        session: RealtimeSession,
        user_id: uuid.UUID,
        *,
        page_limit: int = settings.MESSAGES_PAGE_LIMIT,
    ) -> None:
        self._store = store
        self._user_id = str(user_id)
        self._page_limit = page_limit
        self._generation = 0
        self._active: uuid.UUID | None = None
        self.timeline = MessageTimeline()
        self.composer = Composer(
            store,
            user_id=self._user_id,
            on_optimistic_send=self.timeline.add_optimistic,
            on_confirm_sent=self.timeline.confirm,
            on_send_failed=self.timeline.fail,
            on_retry=self.timeline.mark_retrying,
        )
        self.unread_elsewhere = 0
        self.load_error: AppError | None = None
        self._unsubscribe = session.on_message(self._on_realtime_message)

    @property
    def active_conversation_id(self) -> uuid.UUID | None:
        return self._active

    async def open(self, conversation_id: uuid.UUID) -> bool:
        self._generation += 1
        generation = self._generation
        self._active = conversation_id
        self.load_error = None
        self.composer.conversation_id = str(conversation_id)
        self.composer.cancel_reply()
        self.timeline.reset(str(conversation_id))

        result = await self._store.list_messages(conversation_id, self._page_limit)
        if generation != self._generation:
            logger.debug("Discarding stale load of conversation %s", conversation_id)
            return False
        if not result.ok:
            self.load_error = result.error
            return False

        self.timeline.replace_history(UiMessage.from_message(m) for m in result.unwrap())
        await self._store.mark_read(conversation_id)
        return True

    def close(self) -> None:
        self._generation += 1
        self._active = None
        self.composer.conversation_id = None
        self._unsubscribe()

    async def send(self, text: str) -> UiMessage | None:
        return await self.composer.submit(text)

    async def retry(self, client_id: str) -> bool:
        return await self.composer.retry(client_id)

    def _on_realtime_message(self, record: MessageRecord) -> None:
        if self._active is not None and record.conversation_id == str(self._active):
            self.timeline.apply_incoming(UiMessage.from_record(record))
        elif record.sender_id != self._user_id:
            self.unread_elsewhere += 1
