"""Store accessor facade used by client-side consumers (composer, views).

Every operation returns a :class:`Result`; expected failures never raise.
"""
from __future__ import annotations

import logging
import uuid
from contextlib import AbstractAsyncContextManager
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from echoworld_chat.application.dto.conversation import DirectConversationDTO
from echoworld_chat.application.dto.message import SendMetadata
from echoworld_chat.application.exceptions import AppError, TransientStoreError
from echoworld_chat.application.ports.auth import IdentityProvider
from echoworld_chat.application.result import Result
from echoworld_chat.application.uow import UnitOfWork
from echoworld_chat.domain.entities.conversation import ConversationSummary
from echoworld_chat.domain.entities.member import ConversationMember
from echoworld_chat.domain.entities.message import Message
from echoworld_chat.realtime.broadcaster import RealtimeBroadcaster
from echoworld_chat.services import (
    conversation_service,
    message_service,
    read_state_service,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

UoWFactory = Callable[[], AbstractAsyncContextManager[UnitOfWork]]


class MessagingStore:
    def __init__(
        self,
        uow_factory: UoWFactory,
        identity: IdentityProvider,
        broadcaster: RealtimeBroadcaster | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._identity = identity
        self._broadcaster = broadcaster

    async def list_conversations(
        self, user_id: uuid.UUID,
    ) -> Result[list[ConversationSummary]]:
        async def op(uow: UnitOfWork) -> list[ConversationSummary]:
            principal = self._identity()
            if principal is not None and principal.user_id != user_id:
                return []
            return await conversation_service.list_conversations(principal, uow)

        return await self._run("list_conversations", op)

    async def list_members(
        self, conversation_id: uuid.UUID,
    ) -> Result[list[ConversationMember]]:
        return await self._run(
            "list_members",
            lambda uow: conversation_service.list_members(
                conversation_id, self._identity(), uow,
            ),
        )

    async def list_messages(
        self, conversation_id: uuid.UUID, limit: int = 50,
    ) -> Result[list[Message]]:
        return await self._run(
            "list_messages",
            lambda uow: message_service.list_messages(
                conversation_id, self._identity(), limit, uow,
            ),
        )

    async def send_message(
        self,
        conversation_id: uuid.UUID,
        content: str,
        metadata: SendMetadata | None = None,
    ) -> Result[Message]:
        async def op(uow: UnitOfWork) -> Message:
            msg, _created = await message_service.send_message(
                conversation_id,
                self._identity(),
                content,
                metadata or SendMetadata(),
                uow,
                self._broadcaster,
            )
            return msg

        return await self._run("send_message", op)

    async def mark_read(self, conversation_id: uuid.UUID) -> Result[None]:
        async def op(uow: UnitOfWork) -> None:
            await read_state_service.mark_read(conversation_id, self._identity(), uow)

        return await self._run("mark_read", op)

    async def count_unread(self, user_id: uuid.UUID) -> Result[int]:
        return await self._run(
            "count_unread",
            lambda uow: message_service.count_unread(user_id, self._identity(), uow),
        )

    async def start_or_get_direct_conversation(
        self,
        user_id: uuid.UUID,
        other_user_id: uuid.UUID,
        origin_reference: uuid.UUID | None = None,
    ) -> Result[DirectConversationDTO]:
        return await self._run(
            "start_or_get_direct_conversation",
            lambda uow: conversation_service.start_or_get_direct_conversation(
                user_id,
                other_user_id,
                self._identity(),
                uow,
                origin_reference=origin_reference,
            ),
        )

    async def _run(
        self,
        name: str,
        op: Callable[[UnitOfWork], Awaitable[T]],
    ) -> Result[T]:
        try:
            async with self._uow_factory() as uow:
                return Result.success(await op(uow))
        except AppError as exc:
            logger.info("%s rejected: %s (%s)", name, exc.detail, type(exc).__name__)
            return Result.failure(exc)
        except (SQLAlchemyError, OSError) as exc:
            logger.exception("%s failed in the store", name)
            return Result.failure(TransientStoreError(str(exc)))
