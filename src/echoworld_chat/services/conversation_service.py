from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from echoworld_chat.application.dto.conversation import DirectConversationDTO
from echoworld_chat.application.dto.principal import Principal
from echoworld_chat.application.exceptions import PartialFailureError, ValidationError
from echoworld_chat.application.policies.permissions import (
    assert_conversation_access,
    assert_same_user,
    require_principal,
)
from echoworld_chat.application.uow import UnitOfWork
from echoworld_chat.domain.entities.conversation import Conversation, ConversationSummary
from echoworld_chat.domain.entities.member import ConversationMember
from echoworld_chat.domain.value_objects.enums import ConversationKind, MemberRole

logger = logging.getLogger(__name__)


async def list_conversations(
    principal: Principal | None,
    uow: UnitOfWork,
) -> list[ConversationSummary]:
    """Conversations of the caller, most recently updated first.

    Direct conversations carry the peer's public profile. Enrichment is
    best-effort: on failure the list is returned with empty peer fields.
    """
    principal = require_principal(principal)
    conversations = await uow.conversations.list_for_user(principal.user_id)

    try:
        return await _enrich(conversations, principal.user_id, uow)
    except Exception:
        logger.warning(
            "Peer enrichment failed for user %s", principal.user_id, exc_info=True,
        )
        return [ConversationSummary(conversation=c) for c in conversations]


async def _enrich(
    conversations: list[Conversation],
    user_id: uuid.UUID,
    uow: UnitOfWork,
) -> list[ConversationSummary]:
    peers: dict[uuid.UUID, uuid.UUID] = {}
    for conversation in conversations:
        if conversation.kind != ConversationKind.DIRECT:
            continue
        members = await uow.members.list_members(conversation.id)
        peer = next((m.user_id for m in members if m.user_id != user_id), None)
        if peer is not None:
            peers[conversation.id] = peer

    profiles = await uow.profiles.get_many(sorted(set(peers.values()), key=str))

    summaries: list[ConversationSummary] = []
    for conversation in conversations:
        peer_id = peers.get(conversation.id)
        profile = profiles.get(peer_id) if peer_id else None
        summaries.append(
            ConversationSummary(
                conversation=conversation,
                peer_user_id=peer_id,
                peer_handle=profile.handle if profile else None,
                peer_display_name=profile.display_name if profile else None,
                peer_avatar_url=profile.avatar_url if profile else None,
            )
        )
    return summaries


async def list_members(
    conversation_id: uuid.UUID,
    principal: Principal | None,
    uow: UnitOfWork,
) -> list[ConversationMember]:
    principal = require_principal(principal)
    conversation = await uow.conversations.get_by_id(conversation_id)
    await assert_conversation_access(principal, conversation, uow.members)
    return await uow.members.list_members(conversation_id)


async def start_or_get_direct_conversation(
    user_id: uuid.UUID,
    other_user_id: uuid.UUID,
    principal: Principal | None,
    uow: UnitOfWork,
    *,
    origin_reference: uuid.UUID | None = None,
) -> DirectConversationDTO:
    """Return the direct conversation shared by both users, creating it if needed.

    Search-before-create: two users starting a conversation with each other at
    the same moment can still end up with two direct conversations.
    """
    if user_id == other_user_id:
        raise ValidationError("Cannot start a conversation with yourself")

    principal = require_principal(principal)
    assert_same_user(principal, user_id)

    shared = await uow.conversations.list_shared_direct(user_id, other_user_id)
    if shared:
        match = None
        if origin_reference is not None:
            match = next(
                (c for c in shared if c.origin_reference == origin_reference), None,
            )
        existing = match or shared[0]
        return DirectConversationDTO(conversation_id=existing.id, created=False)

    now = datetime.now(timezone.utc)
    conversation = await uow.conversations_w.create(
        Conversation(
            id=uuid.uuid4(),
            kind=ConversationKind.DIRECT,
            title=None,
            origin_reference=origin_reference,
            created_by=user_id,
            created_at=now,
            updated_at=now,
        )
    )

    try:
        await uow.members_w.add_many([
            ConversationMember(
                conversation_id=conversation.id,
                user_id=member_id,
                role=MemberRole.MEMBER,
                joined_at=now,
            )
            for member_id in (user_id, other_user_id)
        ])
    except Exception as exc:
        await uow.rollback()
        logger.warning(
            "Member insertion failed for new conversation %s", conversation.id,
            exc_info=True,
        )
        raise PartialFailureError("Conversation members could not be created") from exc

    await uow.commit()
    logger.info(
        "Created direct conversation %s between %s and %s",
        conversation.id, user_id, other_user_id,
    )
    return DirectConversationDTO(conversation_id=conversation.id, created=True)
