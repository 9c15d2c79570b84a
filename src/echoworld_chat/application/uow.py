from __future__ import annotations

from typing import Protocol

from echoworld_chat.application.repositories.conversation import (
    ConversationReader,
    ConversationWriter,
)
from echoworld_chat.application.repositories.member import MemberReader, MemberWriter
from echoworld_chat.application.repositories.message import MessageReader, MessageWriter
from echoworld_chat.application.repositories.notification import (
    NotificationReader,
    NotificationWriter,
)
from echoworld_chat.application.repositories.profile import ProfileReader
from echoworld_chat.application.repositories.reaction import (
    ReactionReader,
    ReactionWriter,
)


class UnitOfWork(Protocol):
    conversations: ConversationReader
    conversations_w: ConversationWriter
    members: MemberReader
    members_w: MemberWriter
    messages: MessageReader
    messages_w: MessageWriter
    profiles: ProfileReader
    notifications: NotificationReader
    notifications_w: NotificationWriter
    reactions: ReactionReader
    reactions_w: ReactionWriter

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
    async def flush(self) -> None: ...
