"""Outgoing message state machine: sending -> sent | failed (retryable)."""
from __future__ import annotations

import logging
import secrets
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Protocol

from echoworld_chat.application.callbacks import invoke
from echoworld_chat.application.dto.message import SendMetadata
from echoworld_chat.application.result import Result
from echoworld_chat.composer.ui_message import UiMessage
from echoworld_chat.config import settings
from echoworld_chat.domain.entities.message import Message
from echoworld_chat.domain.value_objects.enums import MessageStatus

logger = logging.getLogger(__name__)

OnOptimisticSend = Callable[[UiMessage], Any]
OnConfirmSent = Callable[[str, UiMessage], Any]
OnSendFailed = Callable[[str, str], Any]
OnRetry = Callable[[str], Any]


class MessageSender(Protocol):
    async def send_message(
        self,
        conversation_id: uuid.UUID,
        content: str,
        metadata: SendMetadata | None = None,
    ) -> Result[Message]: ...


@dataclass(frozen=True, slots=True)
class _Draft:
    conversation_id: str
    content: str
    reply_to: UiMessage | None


def generate_client_id() -> str:
    return f"{int(time.time() * 1000)}-{secrets.token_hex(5)}"


class Composer:
    """Accepts user input and reports every submission's fate through callbacks.

    The consumer splices ``on_optimistic_send`` / ``on_confirm_sent`` /
    ``on_send_failed`` into its visible list. At most ``max_pending``
    submissions may be in flight at once; further submissions are rejected.
    """

    def __init__(
        self,
        sender: MessageSender,
        *,
        conversation_id: str | None = None,
        user_id: str | None = None,
        on_optimistic_send: OnOptimisticSend | None = None,
        on_confirm_sent: OnConfirmSent | None = None,
        on_send_failed: OnSendFailed | None = None,
        on_retry: OnRetry | None = None,
        max_pending: int = settings.COMPOSER_MAX_PENDING,
    ) -> None:
        self._sender = sender
        self.conversation_id = conversation_id
        self.user_id = user_id
        self._on_optimistic_send = on_optimistic_send
        self._on_confirm_sent = on_confirm_sent
        self._on_send_failed = on_send_failed
        self._on_retry = on_retry
        self._max_pending = max_pending
        self._reply_to: UiMessage | None = None
        self._in_flight: set[str] = set()
        self._failed: dict[str, _Draft] = {}

    @property
    def pending_count(self) -> int:
        return len(self._in_flight)

    @property
    def failed_client_ids(self) -> list[str]:
        return list(self._failed)

    @property
    def reply_to(self) -> UiMessage | None:
        return self._reply_to

    @property
    def is_saturated(self) -> bool:
        return len(self._in_flight) >= self._max_pending

    def can_send(self, text: str | None) -> bool:
        return bool(
            self.conversation_id
            and self.user_id
            and (text or "").strip()
            and not self.is_saturated
        )

    def reply(self, message: UiMessage | None) -> None:
        self._reply_to = message

    def cancel_reply(self) -> None:
        self._reply_to = None

    async def submit(self, text: str | None) -> UiMessage | None:
        """Send ``text``; returns the optimistic entry or None when rejected."""
        if not self.can_send(text):
            logger.debug(
                "Submission rejected (conversation=%s, in_flight=%d)",
                self.conversation_id, len(self._in_flight),
            )
            return None

        client_id = generate_client_id()
        reply_to, self._reply_to = self._reply_to, None
        draft = _Draft(
            conversation_id=self.conversation_id,  # type: ignore[arg-type]
            content=(text or "").strip(),
            reply_to=reply_to,
        )

        optimistic = UiMessage(
            id=None,
            conversation_id=draft.conversation_id,
            sender_id=self.user_id,  # type: ignore[arg-type]
            content=draft.content,
            created_at=datetime.now(timezone.utc).isoformat(),
            status=MessageStatus.SENDING,
            client_id=client_id,
            optimistic=True,
            parent_id=reply_to.id if reply_to else None,
            payload={"client_id": client_id},
            parent_message=reply_to,
        )

        self._in_flight.add(client_id)
        await invoke(self._on_optimistic_send, optimistic)
        await self._dispatch(client_id, draft)
        return optimistic

    async def retry(self, client_id: str) -> bool:
        """Resubmit a failed entry with the same client_id and content."""
        draft = self._failed.get(client_id)
        if draft is None or self.is_saturated:
            return False

        del self._failed[client_id]
        self._in_flight.add(client_id)
        await invoke(self._on_retry, client_id)
        await self._dispatch(client_id, draft)
        return True

    async def _dispatch(self, client_id: str, draft: _Draft) -> None:
        reply_to = draft.reply_to
        metadata = SendMetadata(
            client_id=client_id,
            parent_id=uuid.UUID(reply_to.id) if reply_to and reply_to.id else None,
        )

        try:
            result = await self._sender.send_message(
                uuid.UUID(draft.conversation_id), draft.content, metadata,
            )
            error = None if result.ok else (result.error.detail or type(result.error).__name__)
        except Exception as exc:
            logger.warning("Send of %s raised", client_id, exc_info=True)
            result = None
            error = str(exc) or type(exc).__name__
        finally:
            self._in_flight.discard(client_id)

        if result is not None and result.ok:
            confirmed = UiMessage.from_message(result.unwrap(), parent_message=reply_to)
            await invoke(self._on_confirm_sent, client_id, confirmed)
            return

        self._failed[client_id] = draft
        logger.info("Send of %s failed: %s", client_id, error)
        await invoke(self._on_send_failed, client_id, error)
