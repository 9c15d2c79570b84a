"""Typing indicator on a per-conversation presence channel."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable

from echoworld_chat.application.ports.clock import Clock, SystemClock
from echoworld_chat.application.ports.presence import (
    PresenceChannel,
    PresenceChannelFactory,
    PresenceSnapshot,
)
from echoworld_chat.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TypingUser:
    user_id: str
    display_name: str | None = None
    handle: str | None = None


def typing_channel_name(conversation_id: Any) -> str:
    return f"typing:{conversation_id}"


class TypingTracker:
    def __init__(
        self,
        channel_factory: PresenceChannelFactory,
        *,
        timeout_seconds: float = settings.TYPING_TIMEOUT_SECONDS,
        stale_seconds: float = settings.TYPING_STALE_SECONDS,
        clock: Clock | None = None,
    ) -> None:
        self._channel_factory = channel_factory
        self._timeout_seconds = timeout_seconds
        self._stale_seconds = stale_seconds
        self._clock = clock or SystemClock()
        self._channel: PresenceChannel | None = None
        self._user_id: str | None = None
        self._display_name: str | None = None
        self._handle: str | None = None
        self._presences: dict[str, dict[str, Any]] = {}
        self._auto_stop: asyncio.Task[None] | None = None
        self._listeners: dict[Callable[[list[TypingUser]], None], None] = {}

    @property
    def typing_users(self) -> list[TypingUser]:
        """Other members who announced typing within the stale window."""
        now = self._clock.now().timestamp()
        users: list[TypingUser] = []
        for key, presence in self._presences.items():
            uid = str(presence.get("user_id") or key).strip()
            if not uid or uid == self._user_id:
                continue
            typing_at = presence.get("typing_at")
            if not isinstance(typing_at, (int, float)) or now - typing_at > self._stale_seconds:
                continue
            users.append(TypingUser(
                user_id=uid,
                display_name=presence.get("display_name"),
                handle=presence.get("handle"),
            ))
        return users

    def on_change(self, listener: Callable[[list[TypingUser]], None]) -> Callable[[], None]:
        self._listeners[listener] = None

        def unregister() -> None:
            self._listeners.pop(listener, None)

        return unregister

    async def start(
        self,
        conversation_id: Any,
        user_id: Any,
        *,
        display_name: str | None = None,
        handle: str | None = None,
    ) -> None:
        await self.stop()
        uid = str(user_id or "").strip()
        if not conversation_id or not uid:
            return

        self._user_id = uid
        self._display_name = display_name
        self._handle = handle
        channel = self._channel_factory(typing_channel_name(conversation_id), uid)
        try:
            await channel.subscribe(
                on_sync=self._apply_sync,
                on_join=self._apply_join,
                on_leave=self._apply_leave,
            )
        except Exception:
            logger.warning("Typing subscribe failed for %s", conversation_id, exc_info=True)
            return
        self._channel = channel

    async def stop(self) -> None:
        self._cancel_auto_stop()
        channel, self._channel = self._channel, None
        self._presences = {}
        self._user_id = None
        if channel is None:
            return
        try:
            await channel.untrack()
            await channel.unsubscribe()
        except Exception:
            logger.debug("Typing channel teardown failed", exc_info=True)

    async def start_typing(self) -> None:
        if self._channel is None or not self._user_id:
            return
        self._cancel_auto_stop()
        try:
            await self._channel.track({
                "user_id": self._user_id,
                "display_name": self._display_name,
                "handle": self._handle,
                "typing_at": self._clock.now().timestamp(),
            })
        except Exception:
            logger.debug("Typing track failed", exc_info=True)
        self._auto_stop = asyncio.create_task(self._expire(), name="typing-auto-stop")

    async def stop_typing(self) -> None:
        self._cancel_auto_stop()
        await self._untrack()

    async def _expire(self) -> None:
        await asyncio.sleep(self._timeout_seconds)
        self._auto_stop = None
        await self._untrack()

    async def _untrack(self) -> None:
        if self._channel is None:
            return
        try:
            await self._channel.untrack()
        except Exception:
            logger.debug("Typing untrack failed", exc_info=True)

    def _cancel_auto_stop(self) -> None:
        task, self._auto_stop = self._auto_stop, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    def _apply_sync(self, snapshot: PresenceSnapshot) -> None:
        self._presences = {
            key: presences[-1]
            for key, presences in (snapshot or {}).items()
            if isinstance(presences, list) and presences
        }
        self._notify()

    def _apply_join(self, key: str, presences: list[dict[str, Any]]) -> None:
        if presences:
            self._presences[key] = presences[-1]
            self._notify()

    def _apply_leave(self, key: str) -> None:
        if self._presences.pop(key, None) is not None:
            self._notify()

    def _notify(self) -> None:
        users = self.typing_users
        for listener in list(self._listeners):
            try:
                listener(users)
            except Exception:
                logger.exception("Typing listener failed")
