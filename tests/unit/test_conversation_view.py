from __future__ import annotations

import asyncio

import pytest

from echoworld_chat.composer.view import ConversationView
from echoworld_chat.domain.value_objects.enums import MessageStatus
from echoworld_chat.realtime.broadcaster import RealtimeBroadcaster
from echoworld_chat.realtime.session import RealtimeSession
from echoworld_chat.services.store import MessagingStore
from tests.conftest import ALICE_ID, BOB_ID, CAROL_ID, FakeUoW, seed_conversation, uow_factory

PREFIX = "test"


async def _client(uow, broker, principal) -> tuple[MessagingStore, RealtimeSession, ConversationView]:
    broadcaster = RealtimeBroadcaster(broker, prefix=PREFIX)
    store = MessagingStore(uow_factory(uow), lambda: principal, broadcaster)
    session = RealtimeSession(broker.subscriber_factory, broadcaster, prefix=PREFIX)
    await session.start(principal.user_id)
    return store, session, ConversationView(store, session, principal.user_id)


@pytest.mark.asyncio
async def test_first_message_to_new_peer_reaches_peer_as_unread(alice, bob, broker):
    uow = FakeUoW()
    alice_store, _, alice_view = await _client(uow, broker, alice)
    bob_store, _, bob_view = await _client(uow, broker, bob)

    started = (await alice_store.start_or_get_direct_conversation(ALICE_ID, BOB_ID)).unwrap()
    assert started.created is True
    assert len(await uow.members.list_members(started.conversation_id)) == 2

    assert await alice_view.open(started.conversation_id) is True
    sent = await alice_view.send("hello")

    assert sent is not None
    assert bob_view.unread_elsewhere == 1
    assert (await bob_store.count_unread(BOB_ID)).unwrap() == 1
    [entry] = alice_view.timeline.entries
    assert entry.content == "hello"
    assert entry.status == MessageStatus.SENT
    assert entry.client_id == sent.client_id


@pytest.mark.asyncio
async def test_peer_viewing_conversation_sees_arrival(alice, bob, broker):
    uow = FakeUoW()
    conv = seed_conversation(uow, ALICE_ID, BOB_ID)
    _, _, alice_view = await _client(uow, broker, alice)
    _, _, bob_view = await _client(uow, broker, bob)
    await alice_view.open(conv.id)
    await bob_view.open(conv.id)

    await alice_view.send("hi bob")

    assert [e.content for e in bob_view.timeline] == ["hi bob"]
    assert bob_view.unread_elsewhere == 0
    assert len(alice_view.timeline) == 1


@pytest.mark.asyncio
async def test_open_loads_history_and_marks_read(alice, bob, broker):
    uow = FakeUoW()
    conv = seed_conversation(uow, ALICE_ID, BOB_ID)
    bob_store, _, _ = await _client(uow, broker, bob)
    await bob_store.send_message(conv.id, "one")
    await bob_store.send_message(conv.id, "two")
    alice_store, _, alice_view = await _client(uow, broker, alice)
    assert (await alice_store.count_unread(ALICE_ID)).unwrap() == 2

    await alice_view.open(conv.id)

    assert [e.content for e in alice_view.timeline] == ["one", "two"]
    assert (await alice_store.count_unread(ALICE_ID)).unwrap() == 0


@pytest.mark.asyncio
async def test_stale_load_is_discarded(alice, broker):
    uow = FakeUoW()
    first = seed_conversation(uow, ALICE_ID, BOB_ID)
    second = seed_conversation(uow, ALICE_ID, CAROL_ID)
    _, _, view = await _client(uow, broker, alice)

    gate = asyncio.Event()
    original = uow.messages.list_messages

    async def slow_list(conversation_id, *, limit=50):
        if conversation_id == first.id:
            await gate.wait()
        return await original(conversation_id, limit=limit)

    uow.messages.list_messages = slow_list

    slow = asyncio.create_task(view.open(first.id))
    await asyncio.sleep(0)
    assert await view.open(second.id) is True
    gate.set()

    assert await slow is False
    assert view.active_conversation_id == second.id
    assert view.timeline.conversation_id == str(second.id)


@pytest.mark.asyncio
async def test_load_failure_is_exposed(carol, broker):
    uow = FakeUoW()
    conv = seed_conversation(uow, ALICE_ID, BOB_ID)
    _, _, view = await _client(uow, broker, carol)

    assert await view.open(conv.id) is False
    assert view.load_error is not None
    assert len(view.timeline) == 0


@pytest.mark.asyncio
async def test_close_stops_realtime_updates(alice, bob, broker):
    uow = FakeUoW()
    conv = seed_conversation(uow, ALICE_ID, BOB_ID)
    bob_store, _, _ = await _client(uow, broker, bob)
    _, _, alice_view = await _client(uow, broker, alice)
    await alice_view.open(conv.id)
    alice_view.close()

    await bob_store.send_message(conv.id, "anyone?")

    assert len(alice_view.timeline) == 0
    assert alice_view.unread_elsewhere == 0


@pytest.mark.asyncio
async def test_send_confirmed_after_switching_stays_out_of_new_timeline(alice, broker):
    uow = FakeUoW()
    conv_a = seed_conversation(uow, ALICE_ID, BOB_ID)
    conv_b = seed_conversation(uow, ALICE_ID, CAROL_ID)
    _, _, view = await _client(uow, broker, alice)
    await view.open(conv_a.id)

    gate = asyncio.Event()
    original = uow.messages_w.create_if_not_exists

    async def slow_create(message):
        await gate.wait()
        return await original(message)

    uow.messages_w.create_if_not_exists = slow_create

    pending = asyncio.create_task(view.send("for A"))
    for _ in range(3):
        await asyncio.sleep(0)
    assert await view.open(conv_b.id) is True
    gate.set()
    await pending

    assert len(view.timeline) == 0
    assert view.unread_elsewhere == 0
    [stored] = await uow.messages.list_messages(conv_a.id)
    assert stored.content == "for A"
