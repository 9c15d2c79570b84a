from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from echoworld_chat.application.exceptions import (
    AuthenticationError,
    ForbiddenError,
    NotFoundError,
    PartialFailureError,
    ValidationError,
)
from echoworld_chat.domain.entities.profile import Profile
from echoworld_chat.domain.value_objects.enums import ConversationKind
from echoworld_chat.services import conversation_service
from tests.conftest import ALICE_ID, BOB_ID, CAROL_ID, FakeUoW, seed_conversation


@pytest.mark.asyncio
async def test_start_direct_creates_conversation_with_both_members(alice):
    uow = FakeUoW()

    result = await conversation_service.start_or_get_direct_conversation(
        ALICE_ID, BOB_ID, alice, uow,
    )

    assert result.created is True
    conv = uow.conversations._store[result.conversation_id]
    assert conv.kind == ConversationKind.DIRECT
    assert conv.created_by == ALICE_ID
    members = await uow.members.list_members(result.conversation_id)
    assert {m.user_id for m in members} == {ALICE_ID, BOB_ID}
    assert uow.commits == 1


@pytest.mark.asyncio
async def test_start_direct_with_self_is_rejected_without_writes(alice):
    uow = FakeUoW()

    with pytest.raises(ValidationError):
        await conversation_service.start_or_get_direct_conversation(
            ALICE_ID, ALICE_ID, alice, uow,
        )

    assert uow.conversations_w.created == []
    assert uow.members._members == []
    assert uow.commits == 0


@pytest.mark.asyncio
async def test_start_direct_requires_identity():
    uow = FakeUoW()

    with pytest.raises(AuthenticationError):
        await conversation_service.start_or_get_direct_conversation(
            ALICE_ID, BOB_ID, None, uow,
        )


@pytest.mark.asyncio
async def test_start_direct_on_behalf_of_another_user_is_forbidden(carol):
    with pytest.raises(ForbiddenError):
        await conversation_service.start_or_get_direct_conversation(
            ALICE_ID, BOB_ID, carol, FakeUoW(),
        )


@pytest.mark.asyncio
async def test_start_direct_returns_existing_shared_conversation(alice):
    uow = FakeUoW()
    existing = seed_conversation(uow, ALICE_ID, BOB_ID)

    result = await conversation_service.start_or_get_direct_conversation(
        ALICE_ID, BOB_ID, alice, uow,
    )

    assert result.conversation_id == existing.id
    assert result.created is False
    assert uow.conversations_w.created == []
    assert uow.commits == 0


@pytest.mark.asyncio
async def test_start_direct_prefers_matching_origin_reference(alice):
    uow = FakeUoW()
    origin = uuid.uuid4()
    now = datetime.now(timezone.utc)
    seed_conversation(uow, ALICE_ID, BOB_ID, updated_at=now)
    tagged = seed_conversation(
        uow, ALICE_ID, BOB_ID, origin_reference=origin, updated_at=now - timedelta(days=1),
    )

    result = await conversation_service.start_or_get_direct_conversation(
        ALICE_ID, BOB_ID, alice, uow, origin_reference=origin,
    )

    assert result.conversation_id == tagged.id
    assert result.created is False


@pytest.mark.asyncio
async def test_start_direct_ignores_group_conversations(alice):
    uow = FakeUoW()
    seed_conversation(uow, ALICE_ID, BOB_ID, CAROL_ID, kind=ConversationKind.GROUP)

    result = await conversation_service.start_or_get_direct_conversation(
        ALICE_ID, BOB_ID, alice, uow,
    )

    assert result.created is True


@pytest.mark.asyncio
async def test_start_direct_member_failure_rolls_back(alice):
    uow = FakeUoW()
    uow.members_w.fail = True

    with pytest.raises(PartialFailureError):
        await conversation_service.start_or_get_direct_conversation(
            ALICE_ID, BOB_ID, alice, uow,
        )

    assert uow.rollbacks == 1
    assert uow.commits == 0


@pytest.mark.asyncio
async def test_list_conversations_enriches_direct_peer(alice):
    uow = FakeUoW()
    conv = seed_conversation(uow, ALICE_ID, BOB_ID)
    uow.profiles._profiles[BOB_ID] = Profile(
        id=BOB_ID, handle="bob", display_name="Bob", avatar_url=None,
    )

    result = await conversation_service.list_conversations(alice, uow)

    assert len(result) == 1
    assert result[0].conversation.id == conv.id
    assert result[0].peer_user_id == BOB_ID
    assert result[0].peer_handle == "bob"
    assert result[0].peer_display_name == "Bob"


@pytest.mark.asyncio
async def test_list_conversations_survives_enrichment_failure(alice):
    uow = FakeUoW()
    seed_conversation(uow, ALICE_ID, BOB_ID)
    uow.profiles.fail = True

    result = await conversation_service.list_conversations(alice, uow)

    assert len(result) == 1
    assert result[0].peer_user_id is None
    assert result[0].peer_handle is None


@pytest.mark.asyncio
async def test_list_conversations_most_recent_first(alice):
    uow = FakeUoW()
    now = datetime.now(timezone.utc)
    older = seed_conversation(uow, ALICE_ID, BOB_ID, updated_at=now - timedelta(hours=1))
    newer = seed_conversation(uow, ALICE_ID, CAROL_ID, updated_at=now)

    result = await conversation_service.list_conversations(alice, uow)

    assert [s.conversation.id for s in result] == [newer.id, older.id]


@pytest.mark.asyncio
async def test_list_members_requires_membership(carol):
    uow = FakeUoW()
    conv = seed_conversation(uow, ALICE_ID, BOB_ID)

    with pytest.raises(ForbiddenError):
        await conversation_service.list_members(conv.id, carol, uow)


@pytest.mark.asyncio
async def test_list_members_unknown_conversation(alice):
    with pytest.raises(NotFoundError):
        await conversation_service.list_members(uuid.uuid4(), alice, FakeUoW())
