from __future__ import annotations

import uuid
from datetime import datetime, timezone

from echoworld_chat.application.dto.principal import Principal
from echoworld_chat.application.policies.permissions import (
    assert_conversation_access,
    require_principal,
)
from echoworld_chat.application.uow import UnitOfWork


async def mark_read(
    conversation_id: uuid.UUID,
    principal: Principal | None,
    uow: UnitOfWork,
) -> datetime:
    principal = require_principal(principal)
    conversation = await uow.conversations.get_by_id(conversation_id)
    await assert_conversation_access(principal, conversation, uow.members)
    now = datetime.now(timezone.utc)
    await uow.members_w.set_last_read(conversation_id, principal.user_id, now)
    await uow.commit()
    return now
