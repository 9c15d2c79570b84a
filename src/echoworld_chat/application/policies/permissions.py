from __future__ import annotations

from uuid import UUID

from echoworld_chat.application.dto.principal import Principal
from echoworld_chat.application.exceptions import (
    AuthenticationError,
    ForbiddenError,
    NotFoundError,
)
from echoworld_chat.application.repositories.member import MemberReader
from echoworld_chat.domain.entities.conversation import Conversation
from echoworld_chat.domain.entities.member import ConversationMember


def require_principal(principal: Principal | None) -> Principal:
    if principal is None:
        raise AuthenticationError("Not authenticated")
    return principal


async def assert_conversation_access(
    principal: Principal,
    conversation: Conversation | None,
    members: MemberReader,
) -> ConversationMember:
    """Raise if conversation doesn't exist or principal is not a member."""
    if conversation is None:
        raise NotFoundError("Conversation not found")

    member = await members.get(conversation.id, principal.user_id)
    if member is None:
        raise ForbiddenError("Not a member of this conversation")

    return member


def assert_same_user(principal: Principal, user_id: UUID) -> None:
    if principal.user_id != user_id:
        raise ForbiddenError("Cannot act on behalf of another user")
