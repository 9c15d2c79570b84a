from __future__ import annotations

import uuid

import pytest
from sqlalchemy.exc import OperationalError

from echoworld_chat.application.dto.message import SendMetadata
from echoworld_chat.application.exceptions import (
    AuthenticationError,
    TransientStoreError,
    ValidationError,
)
from echoworld_chat.services.store import MessagingStore
from tests.conftest import ALICE_ID, BOB_ID, FakeUoW, seed_conversation, uow_factory


def _store(uow: FakeUoW, principal) -> MessagingStore:
    return MessagingStore(uow_factory(uow), lambda: principal)


@pytest.mark.asyncio
async def test_send_returns_success_result(alice):
    uow = FakeUoW()
    conv = seed_conversation(uow, ALICE_ID, BOB_ID)

    result = await _store(uow, alice).send_message(conv.id, "hi", SendMetadata(client_id="x"))

    assert result.ok
    assert result.unwrap().client_id == "x"


@pytest.mark.asyncio
async def test_send_without_identity_is_auth_error_result():
    uow = FakeUoW()
    conv = seed_conversation(uow, ALICE_ID, BOB_ID)

    result = await _store(uow, None).send_message(conv.id, "hi")

    assert not result.ok
    assert isinstance(result.error, AuthenticationError)
    assert uow.messages._messages == []


@pytest.mark.asyncio
async def test_self_conversation_is_validation_error_result(alice):
    uow = FakeUoW()

    result = await _store(uow, alice).start_or_get_direct_conversation(ALICE_ID, ALICE_ID)

    assert isinstance(result.error, ValidationError)
    assert uow.conversations_w.created == []


@pytest.mark.asyncio
async def test_store_errors_become_transient_results(alice):
    uow = FakeUoW()

    async def broken(user_id):
        raise OperationalError("SELECT 1", {}, ConnectionRefusedError("db down"))

    uow.conversations.list_for_user = broken

    result = await _store(uow, alice).list_conversations(ALICE_ID)

    assert isinstance(result.error, TransientStoreError)
    assert uow.rollbacks == 1
    with pytest.raises(TransientStoreError):
        result.unwrap()


@pytest.mark.asyncio
async def test_list_conversations_for_other_user_is_empty(alice):
    uow = FakeUoW()
    seed_conversation(uow, ALICE_ID, BOB_ID)

    result = await _store(uow, alice).list_conversations(BOB_ID)

    assert result.ok
    assert result.unwrap() == []


@pytest.mark.asyncio
async def test_unread_then_mark_read(alice, bob):
    uow = FakeUoW()
    conv = seed_conversation(uow, ALICE_ID, BOB_ID)
    await _store(uow, alice).send_message(conv.id, "one")
    await _store(uow, alice).send_message(conv.id, "two")
    bob_store = _store(uow, bob)

    assert (await bob_store.count_unread(BOB_ID)).unwrap() == 2
    assert (await bob_store.mark_read(conv.id)).ok
    assert (await bob_store.count_unread(BOB_ID)).unwrap() == 0


@pytest.mark.asyncio
async def test_list_members_not_found_result(alice):
    result = await _store(FakeUoW(), alice).list_members(uuid.uuid4())

    assert not result.ok
    assert result.unwrap_or([]) == []
