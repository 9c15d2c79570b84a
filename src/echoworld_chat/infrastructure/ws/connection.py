"""Single WebSocket connection with a serialized outbound queue."""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from echoworld_chat.infrastructure.ws.protocol import WsOutbound

logger = logging.getLogger(__name__)


class WsConnection:
    """Frames posted from any callback are written in order by one writer task.

    ``post`` never blocks and can be called from synchronous listeners.
    """

    def __init__(self, websocket: WebSocket, *, max_queue: int = 1000) -> None:
        self._ws = websocket
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize=max_queue)
        self._writer: asyncio.Task[None] | None = None

    @property
    def websocket(self) -> WebSocket:
        return self._ws

    async def open(self) -> None:
        await self._ws.accept()
        self._writer = asyncio.create_task(self._write_loop(), name="ws-writer")

    def post(self, event_type: str, data: dict[str, Any] | None = None) -> None:
        frame = WsOutbound(type=event_type, data=data or {}).model_dump_json()
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull:
            logger.warning("WS outbound queue full, dropping %s frame", event_type)

    async def close(self) -> None:
        writer, self._writer = self._writer, None
        if writer is not None:
            writer.cancel()
            try:
                await writer
            except asyncio.CancelledError:
                pass

    async def _write_loop(self) -> None:
        while True:
            frame = await self._queue.get()
            if self._ws.application_state != WebSocketState.CONNECTED:
                return
            try:
                await self._ws.send_text(frame)
            except Exception:
                logger.debug("WS send failed, stopping writer", exc_info=True)
                return
