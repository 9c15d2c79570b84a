"""Online / last-seen tracking driven by presence channel events."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from echoworld_chat.application.ports.clock import Clock, SystemClock
from echoworld_chat.application.ports.presence import (
    PresenceChannel,
    PresenceChannelFactory,
    PresenceSnapshot,
)
from echoworld_chat.config import settings

logger = logging.getLogger(__name__)

PresenceListener = Callable[[dict[str, "PresenceState"]], None]

_ONLINE_AT_KEYS = ("online_at", "onlineAt", "ts", "timestamp")


@dataclass(frozen=True, slots=True)
class PresenceState:
    user_id: str
    online: bool
    last_seen: str  # ISO-8601


def extract_online_at(presence: Any) -> str | None:
    """Announced timestamp of a presence payload, if any."""
    if not isinstance(presence, Mapping):
        return None
    for key in _ONLINE_AT_KEYS:
        value = presence.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return None


class PresenceTracker:
    """Maintains user_id -> PresenceState for one (user, channel) pair.

    ``sync`` replaces the whole map, ``join``/``leave`` are deltas applied on
    top; with no sequence numbers the last applied event wins. A change of
    identity or channel resets the map on the next loop iteration rather than
    inside the call that caused it.
    """

    def __init__(
        self,
        channel_factory: PresenceChannelFactory,
        *,
        heartbeat_seconds: float = settings.PRESENCE_HEARTBEAT_SECONDS,
        clock: Clock | None = None,
    ) -> None:
        self._channel_factory = channel_factory
        self._heartbeat_seconds = heartbeat_seconds
        self._clock = clock or SystemClock()
        self._states: dict[str, PresenceState] = {}
        self._listeners: dict[PresenceListener, None] = {}
        self._channel: PresenceChannel | None = None
        self._heartbeat_task: asyncio.Task[None] | None = None
        self._identity: tuple[str, str] | None = None
        self._reset_pending = False

    @property
    def states(self) -> dict[str, PresenceState]:
        return dict(self._states)

    @property
    def user_id(self) -> str | None:
        return self._identity[0] if self._identity else None

    def on_change(self, listener: PresenceListener) -> Callable[[], None]:
        self._listeners[listener] = None

        def unregister() -> None:
            self._listeners.pop(listener, None)

        return unregister

    async def start(
        self,
        user_id: Any,
        channel_name: str = settings.PRESENCE_CHANNEL,
    ) -> None:
        uid = str(user_id or "").strip()
        identity = (uid, channel_name)
        if identity == self._identity and self._channel is not None:
            return

        await self._teardown()
        self._identity = identity
        self._schedule_reset()
        if not uid:
            return

        channel = self._channel_factory(channel_name, uid)
        self._channel = channel
        try:
            await channel.subscribe(
                on_sync=self._apply_sync,
                on_join=self._apply_join,
                on_leave=self._apply_leave,
            )
        except Exception:
            logger.warning("Presence subscribe failed on %s", channel_name, exc_info=True)
            return

        await self._announce()
        self._heartbeat_task = asyncio.create_task(
            self._heartbeat(), name=f"presence-heartbeat-{uid}",
        )

    async def stop(self) -> None:
        await self._teardown()
        self._identity = None
        self._schedule_reset()

    async def _teardown(self) -> None:
        task, self._heartbeat_task = self._heartbeat_task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        channel, self._channel = self._channel, None
        if channel is None:
            return
        try:
            await channel.untrack()
        except Exception:
            logger.debug("Presence untrack failed", exc_info=True)
        try:
            await channel.unsubscribe()
        except Exception:
            logger.debug("Presence unsubscribe failed", exc_info=True)

    def _schedule_reset(self) -> None:
        self._reset_pending = True
        asyncio.get_running_loop().call_soon(self._run_pending_reset)

    def _run_pending_reset(self) -> None:
        if not self._reset_pending:
            return
        self._reset_pending = False
        if self._states:
            self._states = {}
            self._notify()

    def _begin_update(self) -> dict[str, PresenceState]:
        # the first event of a new identity supersedes the pending reset
        if self._reset_pending:
            self._reset_pending = False
            return {}
        return dict(self._states)

    async def _heartbeat(self) -> None:
        while True:
            await asyncio.sleep(self._heartbeat_seconds)
            await self._announce()

    async def _announce(self) -> None:
        if self._channel is None or self._identity is None:
            return
        try:
            await self._channel.track({
                "user_id": self._identity[0],
                "online_at": self._now_iso(),
            })
        except Exception:
            logger.debug("Presence track failed", exc_info=True)

    def _apply_sync(self, snapshot: PresenceSnapshot) -> None:
        self._begin_update()
        states: dict[str, PresenceState] = {}
        for key, presences in (snapshot or {}).items():
            uid = str(key or "").strip()
            if not uid:
                continue
            first = presences[0] if isinstance(presences, list) and presences else None
            states[uid] = PresenceState(
                user_id=uid,
                online=True,
                last_seen=extract_online_at(first) or self._now_iso(),
            )
        self._states = states
        self._notify()

    def _apply_join(self, key: str, presences: list[dict[str, Any]]) -> None:
        uid = str(key or "").strip()
        if not uid:
            return
        first = presences[0] if isinstance(presences, list) and presences else None
        states = self._begin_update()
        states[uid] = PresenceState(
            user_id=uid,
            online=True,
            last_seen=extract_online_at(first) or self._now_iso(),
        )
        self._states = states
        self._notify()

    def _apply_leave(self, key: str) -> None:
        uid = str(key or "").strip()
        if not uid:
            return
        states = self._begin_update()
        existing = states.get(uid)
        states[uid] = PresenceState(
            user_id=uid,
            online=False,
            last_seen=existing.last_seen if existing else self._now_iso(),
        )
        self._states = states
        self._notify()

    def _notify(self) -> None:
        snapshot = self.states
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Presence listener failed")

    def _now_iso(self) -> str:
        return self._clock.now().isoformat()


def is_user_online(states: Mapping[str, PresenceState], user_id: Any) -> bool:
    uid = str(user_id or "").strip()
    if not uid:
        return False
    state = states.get(uid)
    return state.online if state else False


def format_last_seen(last_seen: str, now: datetime | None = None) -> str:
    """Human readable "last seen" label."""
    try:
        then = datetime.fromisoformat(last_seen)
    except (TypeError, ValueError):
        return "—"
    if then.tzinfo is None:
        then = then.replace(tzinfo=timezone.utc)

    now = now or datetime.now(timezone.utc)
    seconds = max(0.0, (now - then).total_seconds())
    minutes = int(seconds // 60)
    hours = int(seconds // 3600)
    days = int(seconds // 86400)

    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes} min ago"
    if hours < 24:
        return f"{hours}h ago"
    if days < 7:
        return f"{days}d ago"
    return f"{then.day} {then.strftime('%b')}"
