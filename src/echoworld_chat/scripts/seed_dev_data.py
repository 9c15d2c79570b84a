"""Seed development data: two profiles, a direct conversation and a few messages."""
from __future__ import annotations

import asyncio
import logging
import uuid

from sqlalchemy.dialects.postgresql import insert as pg_insert

from echoworld_chat.application.dto.message import SendMetadata
from echoworld_chat.application.dto.principal import Principal
from echoworld_chat.infrastructure.db.base import Base
from echoworld_chat.infrastructure.db.models import ProfileModel
from echoworld_chat.infrastructure.db.session import AsyncSessionLocal, engine
from echoworld_chat.infrastructure.db.uow import SqlAlchemyUoW
from echoworld_chat.services import conversation_service, message_service

logger = logging.getLogger(__name__)

ALICE = uuid.UUID("00000000-0000-4000-8000-00000000a11c")
BOB = uuid.UUID("00000000-0000-4000-8000-000000000b0b")


async def seed() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        await session.execute(
            pg_insert(ProfileModel)
            .values([
                {"id": ALICE, "handle": "alice", "display_name": "Alice", "avatar_url": None},
                {"id": BOB, "handle": "bob", "display_name": "Bob", "avatar_url": None},
            ])
            .on_conflict_do_nothing(index_elements=["id"])
        )
        await session.commit()

        uow = SqlAlchemyUoW(session)
        alice, bob = Principal(user_id=ALICE), Principal(user_id=BOB)
        direct = await conversation_service.start_or_get_direct_conversation(
            ALICE, BOB, alice, uow,
        )

        messages_data = [
            (alice, "Hi Bob! Saw your echo near the river."),
            (bob, "Hey! Yes, left it this morning."),
            (alice, "Going there tomorrow, want to join?"),
        ]
        for index, (sender, content) in enumerate(messages_data):
            await message_service.send_message(
                direct.conversation_id,
                sender,
                content,
                SendMetadata(client_id=f"seed-{index}"),
                uow,
            )

        logger.info(
            "Seeded conversation %s with %d messages (created=%s)",
            direct.conversation_id, len(messages_data), direct.created,
        )


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    asyncio.run(seed())


if __name__ == "__main__":
    main()
