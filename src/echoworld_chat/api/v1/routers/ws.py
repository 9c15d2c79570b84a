from __future__ import annotations

import asyncio
import logging
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as PydanticValidationError

from echoworld_chat.api.deps import get_verifier
from echoworld_chat.application.dto.principal import Principal
from echoworld_chat.application.exceptions import AppError
from echoworld_chat.config import settings
from echoworld_chat.domain.value_objects.enums import RealtimeEvent
from echoworld_chat.infrastructure.ws.connection import WsConnection
from echoworld_chat.infrastructure.ws.protocol import WsInbound
from echoworld_chat.presence.tracker import PresenceState, PresenceTracker
from echoworld_chat.presence.typing import TypingTracker, TypingUser
from echoworld_chat.realtime.records import MessageRecord, NotificationRecord
from echoworld_chat.realtime.session import RealtimeSession
from echoworld_chat.services import conversation_service
from echoworld_chat.services.store import UoWFactory

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])


async def _authenticate(token: str) -> Principal | None:
    try:
        return await get_verifier().verify(token)
    except AppError:
        logger.debug("WS auth failed", exc_info=True)
        return None


@router.websocket("/ws/realtime")
async def ws_realtime(
    websocket: WebSocket,
    token: str = Query(...),
) -> None:
    principal = await _authenticate(token)
    if principal is None:
        await websocket.close(code=4001, reason="Authentication failed")
        return

    state = websocket.app.state
    conn = WsConnection(websocket)
    await conn.open()

    client = _RealtimeClient(
        conn,
        principal,
        session=RealtimeSession(state.subscriber_factory, state.broadcaster),
        presence=PresenceTracker(state.presence_factory),
        typing=TypingTracker(state.presence_factory),
        uow_factory=state.uow_factory,
    )
    heartbeat_task = asyncio.create_task(
        _heartbeat(conn), name=f"ws-heartbeat-{principal.principal_key}",
    )
    try:
        await client.start()
        await _read_loop(websocket, client)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for %s", principal.principal_key)
    finally:
        heartbeat_task.cancel()
        await client.stop()
        await conn.close()


async def _heartbeat(conn: WsConnection) -> None:
    while True:
        await asyncio.sleep(settings.WS_HEARTBEAT_SECONDS)
        conn.post("keepalive")


async def _read_loop(ws: WebSocket, client: _RealtimeClient) -> None:
    while True:
        raw = await ws.receive_text()
        try:
            msg = WsInbound.model_validate_json(raw)
        except PydanticValidationError:
            client.conn.post("error", {"code": "invalid_payload"})
            continue

        if msg.type == "ping":
            client.conn.post("pong")
        elif msg.type == "typing.start":
            await client.start_typing(msg.data)
        elif msg.type == "typing.stop":
            await client.typing.stop_typing()
        else:
            client.conn.post("error", {"code": "unknown_type", "type": msg.type})


class _RealtimeClient:
    """Per-connection wiring of the realtime session and both presence trackers."""

    def __init__(
        self,
        conn: WsConnection,
        principal: Principal,
        *,
        session: RealtimeSession,
        presence: PresenceTracker,
        typing: TypingTracker,
        uow_factory: UoWFactory,
    ) -> None:
        self.conn = conn
        self.principal = principal
        self.session = session
        self.presence = presence
        self.typing = typing
        self._uow_factory = uow_factory
        self._typing_conversation: UUID | None = None

    async def start(self) -> None:
        self.session.on_message(self._forward_message)
        self.session.on_notification(self._forward_notification)
        self.presence.on_change(self._forward_presence)
        self.typing.on_change(self._forward_typing)
        await self.session.start(self.principal.user_id)
        await self.presence.start(self.principal.user_id)

    async def stop(self) -> None:
        await self.typing.stop()
        await self.presence.stop()
        await self.session.stop()

    async def start_typing(self, data: dict[str, Any]) -> None:
        try:
            conversation_id = UUID(str(data["conversation_id"]))
        except (KeyError, ValueError):
            self.conn.post("error", {"code": "invalid_data"})
            return

        if conversation_id != self._typing_conversation:
            try:
                async with self._uow_factory() as uow:
                    await conversation_service.list_members(
                        conversation_id, self.principal, uow,
                    )
                    profiles = await uow.profiles.get_many([self.principal.user_id])
            except AppError as exc:
                self.conn.post("error", {"code": "forbidden", "detail": exc.detail})
                return
            profile = profiles.get(self.principal.user_id)
            self._typing_conversation = conversation_id
            await self.typing.start(
                conversation_id,
                self.principal.user_id,
                display_name=profile.display_name if profile else None,
                handle=profile.handle if profile else None,
            )

        await self.typing.start_typing()

    def _forward_message(self, record: MessageRecord) -> None:
        self.conn.post(RealtimeEvent.MESSAGE_INSERT, record.model_dump(mode="json"))

    def _forward_notification(self, record: NotificationRecord) -> None:
        self.conn.post(RealtimeEvent.NOTIFICATION_INSERT, record.model_dump(mode="json"))

    def _forward_presence(self, states: dict[str, PresenceState]) -> None:
        self.conn.post("presence.state", {
            "users": {
                uid: {"online": s.online, "last_seen": s.last_seen}
                for uid, s in states.items()
            },
        })

    def _forward_typing(self, users: list[TypingUser]) -> None:
        self.conn.post("typing.state", {
            "conversation_id": str(self._typing_conversation) if self._typing_conversation else None,
            "users": [
                {"user_id": u.user_id, "display_name": u.display_name, "handle": u.handle}
                for u in users
            ],
        })
