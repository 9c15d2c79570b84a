"""Redis Pub/Sub: publish side plus a per-channel subscriber background task."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine

import redis.asyncio as aioredis

from echoworld_chat.application.exceptions import TransportError
from echoworld_chat.infrastructure.bus.serializer import deserialize_event, serialize_event

logger = logging.getLogger(__name__)


class RedisPubSubPublisher:
    """Implements application.ports.bus.EventPublisher."""

    def __init__(self, redis: aioredis.Redis) -> None:
        self._redis = redis

    async def publish(self, channel: str, payload: dict[str, Any]) -> None:
        data = dict(payload)
        event_type = data.pop("event_type", "unknown")
        try:
            await self._redis.publish(channel, serialize_event(event_type, data))
        except aioredis.RedisError as exc:
            raise TransportError(str(exc)) from exc


OnEventCallback = Callable[[str, dict[str, Any]], Coroutine[Any, Any, None]]


class RedisPubSubSubscriber:
    """Background task that listens to one Redis channel and dispatches events.

    ``start`` returns once the SUBSCRIBE is acknowledged, so nothing
    published afterwards is missed.
    """

    def __init__(
        self,
        redis: aioredis.Redis,
        channel: str,
        callback: OnEventCallback,
    ) -> None:
        self._redis = redis
        self._channel = channel
        self._callback = callback
        self._pubsub: Any = None
        self._task: asyncio.Task[None] | None = None

    @property
    def channel(self) -> str:
        return self._channel

    async def start(self) -> None:
        if self._task is not None:
            return
        self._pubsub = self._redis.pubsub()
        await self._pubsub.subscribe(self._channel)
        self._task = asyncio.create_task(
            self._listen(), name=f"redis-pubsub-{self._channel}",
        )
        logger.debug("Redis Pub/Sub subscriber started on channel=%s", self._channel)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        pubsub, self._pubsub = self._pubsub, None
        if pubsub is not None:
            await pubsub.unsubscribe(self._channel)
            await pubsub.aclose()
            logger.debug("Redis Pub/Sub subscriber stopped on channel=%s", self._channel)

    async def _listen(self) -> None:
        try:
            async for message in self._pubsub.listen():
                if message["type"] != "message":
                    continue
                try:
                    event_type, data = deserialize_event(message["data"])
                except ValueError:
                    logger.debug("Dropping undecodable message on %s", self._channel)
                    continue
                try:
                    await self._callback(event_type, data)
                except Exception:
                    logger.exception("Error processing pubsub message on %s", self._channel)
        except aioredis.RedisError:
            logger.warning("Redis Pub/Sub listener on %s stopped", self._channel, exc_info=True)


def subscriber_factory(redis: aioredis.Redis) -> Callable[[str, OnEventCallback], RedisPubSubSubscriber]:
    def create(channel: str, callback: OnEventCallback) -> RedisPubSubSubscriber:
        return RedisPubSubSubscriber(redis, channel, callback)

    return create
