from __future__ import annotations

import pytest

from echoworld_chat.application.exceptions import AuthenticationError
from echoworld_chat.domain.value_objects.enums import NotificationType
from echoworld_chat.realtime.broadcaster import RealtimeBroadcaster
from echoworld_chat.realtime.channels import notification_channel
from echoworld_chat.services import notification_service
from tests.conftest import ALICE_ID, BOB_ID, FakeUoW


@pytest.mark.asyncio
async def test_create_notification_commits_then_broadcasts(broker):
    uow = FakeUoW()

    notification = await notification_service.create_notification(
        ALICE_ID,
        NotificationType.MESSAGE,
        uow,
        actor_id=BOB_ID,
        title="New message",
        broadcaster=RealtimeBroadcaster(broker, prefix="test"),
    )

    assert uow._committed is True
    [(channel, payload)] = broker.published
    assert channel == notification_channel("test", ALICE_ID)
    assert payload["event_type"] == "notification_insert"
    assert payload["id"] == str(notification.id)
    assert payload["user_id"] == str(ALICE_ID)


@pytest.mark.asyncio
async def test_unread_count_and_mark_read(alice):
    uow = FakeUoW()
    first = await notification_service.create_notification(ALICE_ID, NotificationType.MESSAGE, uow)
    await notification_service.create_notification(ALICE_ID, NotificationType.REACTION, uow)
    await notification_service.create_notification(BOB_ID, NotificationType.MESSAGE, uow)

    assert await notification_service.count_unread(alice, uow) == 2

    await notification_service.mark_read(first.id, alice, uow)
    assert await notification_service.count_unread(alice, uow) == 1

    await notification_service.mark_all_read(alice, uow)
    assert await notification_service.count_unread(alice, uow) == 0


@pytest.mark.asyncio
async def test_mark_read_ignores_other_users_notification(alice, bob):
    uow = FakeUoW()
    theirs = await notification_service.create_notification(BOB_ID, NotificationType.MESSAGE, uow)

    await notification_service.mark_read(theirs.id, alice, uow)

    assert await notification_service.count_unread(bob, uow) == 1


@pytest.mark.asyncio
async def test_list_notifications_only_own(alice):
    uow = FakeUoW()
    await notification_service.create_notification(ALICE_ID, NotificationType.MESSAGE, uow)
    await notification_service.create_notification(BOB_ID, NotificationType.MESSAGE, uow)

    items = await notification_service.list_notifications(alice, 50, uow)

    assert [n.user_id for n in items] == [ALICE_ID]


@pytest.mark.asyncio
async def test_list_notifications_requires_identity():
    with pytest.raises(AuthenticationError):
        await notification_service.list_notifications(None, 50, FakeUoW())
