from __future__ import annotations

from typing import Any, Callable, Protocol

PresenceSnapshot = dict[str, list[dict[str, Any]]]

OnSync = Callable[[PresenceSnapshot], None]
OnJoin = Callable[[str, list[dict[str, Any]]], None]
OnLeave = Callable[[str], None]


class PresenceChannel(Protocol):
    """A shared channel where members announce themselves under a key."""

    async def subscribe(
        self,
        *,
        on_sync: OnSync,
        on_join: OnJoin,
        on_leave: OnLeave,
    ) -> None: ...

    async def track(self, payload: dict[str, Any]) -> None: ...

    async def untrack(self) -> None: ...

    async def unsubscribe(self) -> None: ...


PresenceChannelFactory = Callable[[str, str], PresenceChannel]
"""(channel_name, member_key) -> channel"""
