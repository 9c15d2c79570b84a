"""WebSocket message envelope models."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class WsInbound(BaseModel):
    """Client → Server."""

    type: str  # ping | typing.start | typing.stop
    data: dict[str, Any] = Field(default_factory=dict)


class WsOutbound(BaseModel):
    """Server → Client."""

    # message_insert | notification_insert | presence.state | typing.state
    # | pong | keepalive | error
    type: str
    data: dict[str, Any] = Field(default_factory=dict)
