from __future__ import annotations

import uuid
from datetime import datetime, timezone

from echoworld_chat.application.dto.message import SendMetadata
from echoworld_chat.application.dto.principal import Principal
from echoworld_chat.application.exceptions import ValidationError
from echoworld_chat.application.policies.permissions import (
    assert_conversation_access,
    assert_same_user,
    require_principal,
)
from echoworld_chat.application.uow import UnitOfWork
from echoworld_chat.domain.entities.message import Message
from echoworld_chat.realtime.broadcaster import RealtimeBroadcaster
from echoworld_chat.realtime.records import MessageRecord

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
MAX_PAGE_LIMIT = 200


async def send_message(
    conversation_id: uuid.UUID,
    principal: Principal | None,
    content: str | None,
    metadata: SendMetadata,
    uow: UnitOfWork,
    broadcaster: RealtimeBroadcaster | None = None,
) -> tuple[Message, bool]:
    """Persist a message idempotently and broadcast it to every member.

    Returns (message, created). If a message with the same client_id already
    exists the existing one is returned with created=False and nothing is
    broadcast again.
    """
    principal = require_principal(principal)
    clean = (content or "").strip()
    if not clean:
        raise ValidationError("Message content is empty")

    conversation = await uow.conversations.get_by_id(conversation_id)
    await assert_conversation_access(principal, conversation, uow.members)

    if metadata.parent_id is not None:
        parent = await uow.messages.get_by_id(metadata.parent_id)
        if parent is None or parent.conversation_id != conversation_id:
            raise ValidationError("Reply target is not part of this conversation")

    msg = Message(
        id=uuid.uuid4(),
        conversation_id=conversation_id,
        sender_id=principal.user_id,
        content=clean,
        parent_id=metadata.parent_id,
        payload=metadata.to_payload() or None,
        client_id=metadata.client_id,
        created_at=datetime.now(timezone.utc),
    )

    msg, created = await uow.messages_w.create_if_not_exists(msg)

    if created:
        await uow.conversations_w.touch(conversation_id, msg.created_at)
        members = await uow.members.list_members(conversation_id)
        await uow.commit()
        if broadcaster is not None:
            await broadcaster.broadcast(
                MessageRecord.from_message(msg), [m.user_id for m in members],
            )

    return msg, created


async def list_messages(
    conversation_id: uuid.UUID,
    principal: Principal | None,
    limit: int,
    uow: UnitOfWork,
) -> list[Message]:
    principal = require_principal(principal)
    conversation = await uow.conversations.get_by_id(conversation_id)
    await assert_conversation_access(principal, conversation, uow.members)
    limit = max(1, min(limit, MAX_PAGE_LIMIT))
    return await uow.messages.list_messages(conversation_id, limit=limit)


async def count_unread(
    user_id: uuid.UUID,
    principal: Principal | None,
    uow: UnitOfWork,
) -> int:
    """Messages from others newer than each membership's last_read_at.

    One count query per conversation.
    """
    principal = require_principal(principal)
    assert_same_user(principal, user_id)

    total = 0
    for member in await uow.members.list_for_user(user_id):
        total += await uow.messages.count_unread(
            member.conversation_id,
            since=member.last_read_at or EPOCH,
            exclude_sender_id=user_id,
        )
    return total
