"""Shared test fixtures."""
from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncIterator
from uuid import UUID

import pytest

from echoworld_chat.application.dto.principal import Principal
from echoworld_chat.application.exceptions import TransportError
from echoworld_chat.application.ports.presence import OnJoin, OnLeave, OnSync, PresenceSnapshot
from echoworld_chat.domain.entities.conversation import Conversation
from echoworld_chat.domain.entities.member import ConversationMember
from echoworld_chat.domain.entities.message import Message
from echoworld_chat.domain.entities.notification import Notification
from echoworld_chat.domain.entities.profile import Profile
from echoworld_chat.domain.entities.reaction import MessageReaction
from echoworld_chat.domain.value_objects.enums import ConversationKind, MemberRole

ALICE_ID = UUID("00000000-0000-4000-8000-00000000a11c")
BOB_ID = UUID("00000000-0000-4000-8000-000000000b0b")
CAROL_ID = UUID("00000000-0000-4000-8000-0000000ca201")


@pytest.fixture
def alice() -> Principal:
    return Principal(user_id=ALICE_ID)


@pytest.fixture
def bob() -> Principal:
    return Principal(user_id=BOB_ID)


@pytest.fixture
def carol() -> Principal:
    return Principal(user_id=CAROL_ID)


def make_conversation(
    *,
    conversation_id: UUID | None = None,
    kind: str = ConversationKind.DIRECT,
    origin_reference: UUID | None = None,
    created_by: UUID | None = None,
    updated_at: datetime | None = None,
) -> Conversation:
    now = datetime.now(timezone.utc)
    return Conversation(
        id=conversation_id or uuid.uuid4(),
        kind=kind,
        title=None,
        origin_reference=origin_reference,
        created_by=created_by,
        created_at=now,
        updated_at=updated_at or now,
    )


def make_message(
    *,
    conversation_id: UUID,
    sender_id: UUID,
    content: str = "hello",
    client_id: str | None = None,
    created_at: datetime | None = None,
    deleted_at: datetime | None = None,
) -> Message:
    return Message(
        id=uuid.uuid4(),
        conversation_id=conversation_id,
        sender_id=sender_id,
        content=content,
        parent_id=None,
        payload={"client_id": client_id} if client_id else None,
        client_id=client_id,
        created_at=created_at or datetime.now(timezone.utc),
        deleted_at=deleted_at,
    )


def seed_conversation(
    uow: FakeUoW,
    *user_ids: UUID,
    kind: str = ConversationKind.DIRECT,
    origin_reference: UUID | None = None,
    updated_at: datetime | None = None,
) -> Conversation:
    conv = make_conversation(
        kind=kind,
        origin_reference=origin_reference,
        created_by=user_ids[0] if user_ids else None,
        updated_at=updated_at,
    )
    uow.conversations._store[conv.id] = conv
    for user_id in user_ids:
        uow.members._members.append(
            ConversationMember(
                conversation_id=conv.id,
                user_id=user_id,
                role=MemberRole.MEMBER,
                joined_at=conv.created_at,
            )
        )
    return conv


# --- repositories -----------------------------------------------------------


@dataclass
class FakeMemberReader:
    _members: list[ConversationMember] = field(default_factory=list)

    async def get(self, conversation_id: UUID, user_id: UUID) -> ConversationMember | None:
        return next(
            (m for m in self._members
             if m.conversation_id == conversation_id and m.user_id == user_id),
            None,
        )

    async def list_members(self, conversation_id: UUID) -> list[ConversationMember]:
        return [m for m in self._members if m.conversation_id == conversation_id]

    async def list_for_user(self, user_id: UUID) -> list[ConversationMember]:
        return [m for m in self._members if m.user_id == user_id]


@dataclass
class FakeMemberWriter:
    _reader: FakeMemberReader
    fail: bool = False

    async def add_many(self, members: list[ConversationMember]) -> None:
        if self.fail:
            raise RuntimeError("insert into conversation_members failed")
        self._reader._members.extend(members)

    async def set_last_read(self, conversation_id: UUID, user_id: UUID, ts: datetime) -> None:
        self._reader._members = [
            replace(m, last_read_at=ts)
            if m.conversation_id == conversation_id and m.user_id == user_id else m
            for m in self._reader._members
        ]


@dataclass
class FakeConversationReader:
    _members: FakeMemberReader
    _store: dict[UUID, Conversation] = field(default_factory=dict)

    async def get_by_id(self, conversation_id: UUID) -> Conversation | None:
        return self._store.get(conversation_id)

    async def list_for_user(self, user_id: UUID) -> list[Conversation]:
        ids = {m.conversation_id for m in self._members._members if m.user_id == user_id}
        convs = [c for c in self._store.values() if c.id in ids]
        return sorted(convs, key=lambda c: c.updated_at, reverse=True)

    async def list_shared_direct(self, user_id: UUID, other_user_id: UUID) -> list[Conversation]:
        mine = await self.list_for_user(user_id)
        theirs = {c.id for c in await self.list_for_user(other_user_id)}
        return [c for c in mine if c.kind == ConversationKind.DIRECT and c.id in theirs]


@dataclass
class FakeConversationWriter:
    _reader: FakeConversationReader
    created: list[Conversation] = field(default_factory=list)

    async def create(self, conversation: Conversation) -> Conversation:
        self._reader._store[conversation.id] = conversation
        self.created.append(conversation)
        return conversation

    async def touch(self, conversation_id: UUID, ts: datetime) -> None:
        conv = self._reader._store.get(conversation_id)
        if conv is not None:
            self._reader._store[conversation_id] = replace(conv, updated_at=ts)


@dataclass
class FakeMessageReader:
    _messages: list[Message] = field(default_factory=list)

    async def get_by_id(self, message_id: UUID) -> Message | None:
        return next((m for m in self._messages if m.id == message_id), None)

    async def list_messages(self, conversation_id: UUID, *, limit: int = 50) -> list[Message]:
        rows = sorted(
            (m for m in self._messages
             if m.conversation_id == conversation_id and m.deleted_at is None),
            key=lambda m: m.created_at,
        )
        return rows[-limit:]

    async def count_unread(
        self,
        conversation_id: UUID,
        *,
        since: datetime,
        exclude_sender_id: UUID,
    ) -> int:
        return sum(
            1 for m in self._messages
            if m.conversation_id == conversation_id
            and m.created_at > since
            and m.sender_id != exclude_sender_id
            and m.deleted_at is None
        )


@dataclass
class FakeMessageWriter:
    _reader: FakeMessageReader

    async def create_if_not_exists(self, message: Message) -> tuple[Message, bool]:
        if message.client_id:
            existing = await self.get_by_client_id(
                message.conversation_id, message.sender_id, message.client_id,
            )
            if existing is not None:
                return existing, False
        self._reader._messages.append(message)
        return message, True

    async def get_by_client_id(
        self, conversation_id: UUID, sender_id: UUID, client_id: str,
    ) -> Message | None:
        return next(
            (m for m in self._reader._messages
             if m.conversation_id == conversation_id
             and m.sender_id == sender_id
             and m.client_id == client_id),
            None,
        )


@dataclass
class FakeProfileReader:
    _profiles: dict[UUID, Profile] = field(default_factory=dict)
    fail: bool = False

    async def get_many(self, user_ids: list[UUID]) -> dict[UUID, Profile]:
        if self.fail:
            raise RuntimeError("profiles unavailable")
        return {uid: self._profiles[uid] for uid in user_ids if uid in self._profiles}


@dataclass
class FakeNotificationReader:
    _items: list[Notification] = field(default_factory=list)

    async def list_for_user(self, user_id: UUID, *, limit: int = 50) -> list[Notification]:
        rows = [n for n in self._items if n.user_id == user_id]
        return sorted(rows, key=lambda n: n.created_at, reverse=True)[:limit]

    async def count_unread(self, user_id: UUID) -> int:
        return sum(1 for n in self._items if n.user_id == user_id and n.read_at is None)


@dataclass
class FakeNotificationWriter:
    _reader: FakeNotificationReader

    async def create(self, notification: Notification) -> Notification:
        self._reader._items.append(notification)
        return notification

    async def mark_read(self, notification_id: UUID, user_id: UUID, ts: datetime) -> None:
        self._reader._items = [
            replace(n, read_at=ts)
            if n.id == notification_id and n.user_id == user_id and n.read_at is None else n
            for n in self._reader._items
        ]

    async def mark_all_read(self, user_id: UUID, ts: datetime) -> None:
        self._reader._items = [
            replace(n, read_at=ts) if n.user_id == user_id and n.read_at is None else n
            for n in self._reader._items
        ]


@dataclass
class FakeReactionReader:
    _items: list[MessageReaction] = field(default_factory=list)

    async def find(self, message_id: UUID, user_id: UUID, emoji: str) -> MessageReaction | None:
        return next(
            (r for r in self._items
             if r.message_id == message_id and r.user_id == user_id and r.emoji == emoji),
            None,
        )

    async def list_for_messages(self, message_ids: list[UUID]) -> list[MessageReaction]:
        wanted = set(message_ids)
        return [r for r in self._items if r.message_id in wanted]


@dataclass
class FakeReactionWriter:
    _reader: FakeReactionReader

    async def add(self, reaction: MessageReaction) -> MessageReaction:
        self._reader._items.append(reaction)
        return reaction

    async def remove(self, reaction_id: UUID) -> None:
        self._reader._items = [r for r in self._reader._items if r.id != reaction_id]


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests."""
    members: FakeMemberReader = field(default_factory=FakeMemberReader)
    members_w: FakeMemberWriter | None = None
    conversations: FakeConversationReader | None = None
    conversations_w: FakeConversationWriter | None = None
    messages: FakeMessageReader = field(default_factory=FakeMessageReader)
    messages_w: FakeMessageWriter | None = None
    profiles: FakeProfileReader = field(default_factory=FakeProfileReader)
    notifications: FakeNotificationReader = field(default_factory=FakeNotificationReader)
    notifications_w: FakeNotificationWriter | None = None
    reactions: FakeReactionReader = field(default_factory=FakeReactionReader)
    reactions_w: FakeReactionWriter | None = None
    commits: int = 0
    rollbacks: int = 0

    def __post_init__(self) -> None:
        if self.members_w is None:
            self.members_w = FakeMemberWriter(self.members)
        if self.conversations is None:
            self.conversations = FakeConversationReader(self.members)
        if self.conversations_w is None:
            self.conversations_w = FakeConversationWriter(self.conversations)
        if self.messages_w is None:
            self.messages_w = FakeMessageWriter(self.messages)
        if self.notifications_w is None:
            self.notifications_w = FakeNotificationWriter(self.notifications)
        if self.reactions_w is None:
            self.reactions_w = FakeReactionWriter(self.reactions)

    @property
    def _committed(self) -> bool:
        return self.commits > 0

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1

    async def __aenter__(self) -> FakeUoW:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if exc_type is not None:
            await self.rollback()


def uow_factory(uow: FakeUoW):
    """Store-compatible factory that hands out the same in-memory UoW."""

    @asynccontextmanager
    async def factory() -> AsyncIterator[FakeUoW]:
        async with uow:
            yield uow

    return factory


@pytest.fixture
def uow() -> FakeUoW:
    return FakeUoW()


# --- transports -------------------------------------------------------------


class FakeSubscriber:
    def __init__(self, broker: FakeBroker, channel: str, callback: Any) -> None:
        self.broker = broker
        self.channel = channel
        self.callback = callback
        self.active = False

    async def start(self) -> None:
        if self.channel in self.broker.fail_subscribe:
            raise TransportError(f"cannot subscribe to {self.channel}")
        self.active = True
        self.broker.subscribers.setdefault(self.channel, []).append(self)

    async def stop(self) -> None:
        self.active = False
        subs = self.broker.subscribers.get(self.channel, [])
        if self in subs:
            subs.remove(self)


class FakeBroker:
    """In-process pub/sub: publisher and subscriber factory in one."""

    def __init__(self) -> None:
        self.subscribers: dict[str, list[FakeSubscriber]] = {}
        self.published: list[tuple[str, dict[str, Any]]] = []
        self.fail_publish: set[str] = set()
        self.fail_subscribe: set[str] = set()

    def subscriber_factory(self, channel: str, callback: Any) -> FakeSubscriber:
        return FakeSubscriber(self, channel, callback)

    def active_channels(self) -> list[str]:
        return sorted(c for c, subs in self.subscribers.items() if subs)

    async def publish(self, channel: str, payload: dict[str, Any]) -> None:
        if channel in self.fail_publish:
            raise TransportError(f"publish to {channel} failed")
        self.published.append((channel, payload))
        data = dict(payload)
        event_type = data.pop("event_type", "unknown")
        await self.deliver(channel, event_type, data)

    async def deliver(self, channel: str, event_type: str, data: dict[str, Any]) -> None:
        for sub in list(self.subscribers.get(channel, [])):
            if sub.active:
                await sub.callback(event_type, data)


class FakePresenceChannel:
    def __init__(self, hub: FakePresenceHub, name: str, key: str) -> None:
        self.hub = hub
        self.name = name
        self.key = key
        self.on_sync: OnSync | None = None
        self.on_join: OnJoin | None = None
        self.on_leave: OnLeave | None = None
        self.tracked: list[dict[str, Any]] = []
        self.subscribed = False

    async def subscribe(self, *, on_sync: OnSync, on_join: OnJoin, on_leave: OnLeave) -> None:
        self.on_sync, self.on_join, self.on_leave = on_sync, on_join, on_leave
        self.subscribed = True
        self.hub.channels.setdefault(self.name, []).append(self)
        on_sync(self.hub.snapshot(self.name))

    async def track(self, payload: dict[str, Any]) -> None:
        self.tracked.append(payload)
        self.hub.state.setdefault(self.name, {})[self.key] = payload
        self.hub.emit_join(self.name, self.key, [payload])

    async def untrack(self) -> None:
        if self.hub.state.get(self.name, {}).pop(self.key, None) is not None:
            self.hub.emit_leave(self.name, self.key)

    async def unsubscribe(self) -> None:
        self.subscribed = False
        subs = self.hub.channels.get(self.name, [])
        if self in subs:
            subs.remove(self)


class FakePresenceHub:
    """Shared in-memory presence state; the factory hands out channels."""

    def __init__(self) -> None:
        self.state: dict[str, dict[str, dict[str, Any]]] = {}
        self.channels: dict[str, list[FakePresenceChannel]] = {}
        self.created: list[FakePresenceChannel] = []

    def factory(self, name: str, key: str) -> FakePresenceChannel:
        channel = FakePresenceChannel(self, name, key)
        self.created.append(channel)
        return channel

    def snapshot(self, name: str) -> PresenceSnapshot:
        return {key: [payload] for key, payload in self.state.get(name, {}).items()}

    def emit_sync(self, name: str, snapshot: PresenceSnapshot) -> None:
        for ch in list(self.channels.get(name, [])):
            ch.on_sync(snapshot)

    def emit_join(self, name: str, key: str, presences: list[dict[str, Any]]) -> None:
        for ch in list(self.channels.get(name, [])):
            ch.on_join(key, presences)

    def emit_leave(self, name: str, key: str) -> None:
        for ch in list(self.channels.get(name, [])):
            ch.on_leave(key)


@pytest.fixture
def broker() -> FakeBroker:
    return FakeBroker()


@pytest.fixture
def presence_hub() -> FakePresenceHub:
    return FakePresenceHub()


class FixedClock:
    def __init__(self, now: datetime | None = None) -> None:
        self._now = now or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += timedelta(seconds=seconds)
