from __future__ import annotations

import uuid
from datetime import datetime, timezone

from echoworld_chat.application.dto.principal import Principal
from echoworld_chat.application.exceptions import NotFoundError, ValidationError
from echoworld_chat.application.policies.permissions import (
    assert_conversation_access,
    require_principal,
)
from echoworld_chat.application.uow import UnitOfWork
from echoworld_chat.domain.entities.reaction import MessageReaction, ReactionGroup
from echoworld_chat.domain.value_objects.enums import NotificationType
from echoworld_chat.realtime.broadcaster import RealtimeBroadcaster
from echoworld_chat.services import notification_service

MAX_EMOJI_LENGTH = 16


async def toggle_reaction(
    message_id: uuid.UUID,
    emoji: str,
    principal: Principal | None,
    uow: UnitOfWork,
    broadcaster: RealtimeBroadcaster | None = None,
) -> tuple[bool, MessageReaction | None]:
    """Add the caller's reaction, or remove it if already present.

    Returns (added, reaction). Reacting to someone else's message notifies
    its author.
    """
    principal = require_principal(principal)
    emoji = (emoji or "").strip()
    if not emoji or len(emoji) > MAX_EMOJI_LENGTH:
        raise ValidationError("Invalid emoji")

    message = await uow.messages.get_by_id(message_id)
    if message is None:
        raise NotFoundError("Message not found")
    conversation = await uow.conversations.get_by_id(message.conversation_id)
    await assert_conversation_access(principal, conversation, uow.members)

    existing = await uow.reactions.find(message_id, principal.user_id, emoji)
    if existing is not None:
        await uow.reactions_w.remove(existing.id)
        await uow.commit()
        return False, None

    reaction = await uow.reactions_w.add(
        MessageReaction(
            id=uuid.uuid4(),
            message_id=message_id,
            user_id=principal.user_id,
            emoji=emoji,
            created_at=datetime.now(timezone.utc),
        )
    )

    if message.sender_id != principal.user_id:
        await notification_service.create_notification(
            message.sender_id,
            NotificationType.REACTION,
            uow,
            actor_id=principal.user_id,
            body=emoji,
            payload={
                "message_id": str(message_id),
                "conversation_id": str(message.conversation_id),
            },
            broadcaster=broadcaster,
        )
    else:
        await uow.commit()

    return True, reaction


async def list_reactions(
    message_ids: list[uuid.UUID],
    principal: Principal | None,
    uow: UnitOfWork,
) -> dict[uuid.UUID, list[MessageReaction]]:
    """Reactions per message, limited to messages in the caller's conversations.

    Unknown messages and messages the caller cannot see are left out.
    """
    principal = require_principal(principal)
    grouped: dict[uuid.UUID, list[MessageReaction]] = {}
    ids = await _visible_message_ids(list(dict.fromkeys(message_ids)), principal, uow)
    if not ids:
        return grouped

    for reaction in await uow.reactions.list_for_messages(ids):
        grouped.setdefault(reaction.message_id, []).append(reaction)
    return grouped


async def _visible_message_ids(
    message_ids: list[uuid.UUID],
    principal: Principal,
    uow: UnitOfWork,
) -> list[uuid.UUID]:
    membership: dict[uuid.UUID, bool] = {}
    visible: list[uuid.UUID] = []
    for message_id in message_ids:
        message = await uow.messages.get_by_id(message_id)
        if message is None:
            continue
        cid = message.conversation_id
        if cid not in membership:
            membership[cid] = await uow.members.get(cid, principal.user_id) is not None
        if membership[cid]:
            visible.append(message_id)
    return visible


def group_reactions(
    reactions: list[MessageReaction],
    current_user_id: uuid.UUID | None,
) -> list[ReactionGroup]:
    """Group by emoji, most used first."""
    groups: dict[str, ReactionGroup] = {}
    for reaction in reactions:
        group = groups.setdefault(reaction.emoji, ReactionGroup(emoji=reaction.emoji))
        group.count += 1
        group.user_ids.append(reaction.user_id)
        if current_user_id is not None and reaction.user_id == current_user_id:
            group.has_current_user = True
    return sorted(groups.values(), key=lambda g: g.count, reverse=True)
