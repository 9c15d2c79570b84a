"""Visible message list with optimistic entries and reconciliation."""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Iterator

from echoworld_chat.composer.ui_message import UiMessage
from echoworld_chat.domain.value_objects.enums import MessageStatus

logger = logging.getLogger(__name__)


class MessageTimeline:
    """Ordered entries of one conversation.

    Entries are matched by ``client_id`` (optimistic ones) and by ``id``
    (persisted ones), never by position: confirmations may arrive in any
    order, and a sender can see both the direct response and the realtime
    echo of the same row. Whatever arrives second is a no-op.
    """

    def __init__(self, conversation_id: str | None = None) -> None:
        self.conversation_id = conversation_id
        self._entries: list[UiMessage] = []

    def __iter__(self) -> Iterator[UiMessage]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> list[UiMessage]:
        return list(self._entries)

    @property
    def sending_count(self) -> int:
        return sum(1 for m in self._entries if m.status == MessageStatus.SENDING)

    def find(self, client_id: str) -> UiMessage | None:
        index = self._index_by_client_id(client_id)
        return self._entries[index] if index is not None else None

    def reset(self, conversation_id: str | None) -> None:
        self.conversation_id = conversation_id
        self._entries = []

    def replace_history(self, messages: Iterable[UiMessage]) -> None:
        """Swap in freshly loaded rows, keeping unconfirmed entries after them."""
        history = [m for m in messages if m.deleted_at is None]
        known_ids = {m.id for m in history}
        known_clients = {m.client_id for m in history if m.client_id}
        pending = [
            m for m in self._entries
            if m.optimistic
            and m.client_id not in known_clients
            and (m.id is None or m.id not in known_ids)
        ]
        self._entries = history + pending

    def add_optimistic(self, message: UiMessage) -> bool:
        if message.client_id and self._index_by_client_id(message.client_id) is not None:
            return False
        self._entries.append(message)
        return True

    def confirm(self, client_id: str, message: UiMessage) -> UiMessage:
        """Replace the optimistic entry with the persisted row.

        A row from another conversation leaves the entries untouched.
        """
        if self.conversation_id and message.conversation_id != self.conversation_id:
            logger.debug(
                "Ignoring confirmation of %s for inactive conversation %s",
                client_id, message.conversation_id,
            )
            return replace(
                message,
                status=MessageStatus.SENT,
                optimistic=False,
                client_id=client_id,
                error=None,
            )

        client_index = self._index_by_client_id(client_id)
        id_index = self._index_by_id(message.id)
        parent = message.parent_message
        retry_count = message.retry_count
        if client_index is not None:
            previous = self._entries[client_index]
            parent = parent or previous.parent_message
            retry_count = previous.retry_count

        confirmed = replace(
            message,
            status=MessageStatus.SENT,
            optimistic=False,
            client_id=client_id,
            error=None,
            retry_count=retry_count,
            parent_message=parent,
        )

        if client_index is None and id_index is None:
            self._entries.append(confirmed)
        elif client_index is None:
            self._entries[id_index] = confirmed
        else:
            self._entries[client_index] = confirmed
            if id_index is not None and id_index != client_index:
                logger.debug("Dropping duplicate copy of message %s", message.id)
                del self._entries[id_index]
        return confirmed

    def fail(self, client_id: str, error: str) -> bool:
        index = self._index_by_client_id(client_id)
        if index is None:
            return False
        entry = self._entries[index]
        if entry.status != MessageStatus.SENDING:
            return False
        self._entries[index] = replace(entry, status=MessageStatus.FAILED, error=error)
        return True

    def mark_retrying(self, client_id: str) -> bool:
        index = self._index_by_client_id(client_id)
        if index is None:
            return False
        entry = self._entries[index]
        if entry.status != MessageStatus.FAILED:
            return False
        self._entries[index] = replace(
            entry,
            status=MessageStatus.SENDING,
            error=None,
            retry_count=entry.retry_count + 1,
        )
        return True

    def apply_incoming(self, message: UiMessage) -> bool:
        """Merge a realtime arrival. Returns True when a new entry was appended."""
        if self.conversation_id and message.conversation_id != self.conversation_id:
            return False
        if message.deleted_at is not None:
            return False
        if self._index_by_id(message.id) is not None:
            return False

        if message.client_id:
            index = self._index_by_client_id(message.client_id)
            if index is not None:
                entry = self._entries[index]
                if entry.status != MessageStatus.SENT:
                    self._entries[index] = replace(
                        message,
                        status=MessageStatus.SENT,
                        optimistic=False,
                        parent_message=entry.parent_message,
                    )
                return False

        self._entries.append(message)
        return True

    def _index_by_client_id(self, client_id: str | None) -> int | None:
        if not client_id:
            return None
        for index, entry in enumerate(self._entries):
            if entry.client_id == client_id:
                return index
        return None

    def _index_by_id(self, message_id: str | None) -> int | None:
        if not message_id:
            return None
        for index, entry in enumerate(self._entries):
            if entry.id == message_id:
                return index
        return None
