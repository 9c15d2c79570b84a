"""Presence channel backed by a Redis hash plus a Pub/Sub event channel.

Each member's latest payload lives in the hash ``presence:{name}`` under its
key together with the time it was written. Joins and leaves are published on
``presence:{name}:events``. Subscribers receive a ``sync`` built from the hash
and then the deltas. Entries not refreshed within ``stale_seconds`` are
treated as departed.
"""
from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable

import redis.asyncio as aioredis

from echoworld_chat.application.ports.presence import (
    OnJoin,
    OnLeave,
    OnSync,
    PresenceSnapshot,
)
from echoworld_chat.config import settings
from echoworld_chat.domain.value_objects.enums import PresenceEvent
from echoworld_chat.infrastructure.bus.redis_pubsub import RedisPubSubSubscriber
from echoworld_chat.infrastructure.bus.serializer import dumps, serialize_event

logger = logging.getLogger(__name__)


def _hash_key(name: str) -> str:
    return f"presence:{name}"


def _events_channel(name: str) -> str:
    return f"presence:{name}:events"


class RedisPresenceChannel:
    """Implements application.ports.presence.PresenceChannel."""

    def __init__(
        self,
        redis: aioredis.Redis,
        name: str,
        key: str,
        *,
        stale_seconds: float = settings.PRESENCE_STALE_SECONDS,
    ) -> None:
        self._redis = redis
        self._name = name
        self._key = key
        self._stale_seconds = stale_seconds
        self._subscriber: RedisPubSubSubscriber | None = None
        self._on_join: OnJoin | None = None
        self._on_leave: OnLeave | None = None
        self._tracked = False

    async def subscribe(self, *, on_sync: OnSync, on_join: OnJoin, on_leave: OnLeave) -> None:
        self._on_join = on_join
        self._on_leave = on_leave
        self._subscriber = RedisPubSubSubscriber(
            self._redis, _events_channel(self._name), self._on_event,
        )
        await self._subscriber.start()
        on_sync(await self._snapshot())

    async def track(self, payload: dict[str, Any]) -> None:
        entry = {"payload": payload, "seen": time.time()}
        await self._redis.hset(_hash_key(self._name), self._key, dumps(entry))
        self._tracked = True
        await self._redis.publish(
            _events_channel(self._name),
            serialize_event(PresenceEvent.JOIN, {"key": self._key, "presences": [payload]}),
        )

    async def untrack(self) -> None:
        if not self._tracked:
            return
        self._tracked = False
        await self._redis.hdel(_hash_key(self._name), self._key)
        await self._redis.publish(
            _events_channel(self._name),
            serialize_event(PresenceEvent.LEAVE, {"key": self._key}),
        )

    async def unsubscribe(self) -> None:
        subscriber, self._subscriber = self._subscriber, None
        self._on_join = self._on_leave = None
        if subscriber is not None:
            await subscriber.stop()

    async def _snapshot(self) -> PresenceSnapshot:
        raw = await self._redis.hgetall(_hash_key(self._name))
        cutoff = time.time() - self._stale_seconds
        snapshot: PresenceSnapshot = {}
        stale: list[str] = []
        for key, value in raw.items():
            try:
                entry = json.loads(value)
                seen = float(entry["seen"])
                payload = entry["payload"]
            except (ValueError, KeyError, TypeError):
                stale.append(key)
                continue
            if seen < cutoff:
                stale.append(key)
                continue
            snapshot[key] = [payload]
        if stale:
            await self._redis.hdel(_hash_key(self._name), *stale)
            logger.debug("Expired %d stale presence entries on %s", len(stale), self._name)
        return snapshot

    async def _on_event(self, event_type: str, data: dict[str, Any]) -> None:
        key = data.get("key")
        if not isinstance(key, str) or not key:
            return
        if event_type == PresenceEvent.JOIN and self._on_join is not None:
            presences = data.get("presences")
            self._on_join(key, presences if isinstance(presences, list) else [])
        elif event_type == PresenceEvent.LEAVE and self._on_leave is not None:
            self._on_leave(key)


def presence_channel_factory(redis: aioredis.Redis) -> Callable[[str, str], RedisPresenceChannel]:
    def create(name: str, key: str) -> RedisPresenceChannel:
        return RedisPresenceChannel(redis, name, key)

    return create
