from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Query, Response, status

from echoworld_chat.api.deps import BroadcasterDep, CurrentPrincipal, UoWDep
from echoworld_chat.api.v1.schemas.message import (
    MessageReactionsResponse,
    MessageResponse,
    ReactionGroupResponse,
    ReactionResponse,
    SendMessageRequest,
    ToggleReactionRequest,
    ToggleReactionResponse,
)
from echoworld_chat.application.dto.message import SendMetadata
from echoworld_chat.config import settings
from echoworld_chat.services import message_service, reaction_service

router = APIRouter(prefix="/api/v1", tags=["messages"])


@router.get(
    "/conversations/{conversation_id}/messages",
    response_model=list[MessageResponse],
)
async def list_messages(
    conversation_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
    limit: int = Query(settings.MESSAGES_PAGE_LIMIT, ge=1, le=200),
) -> list[MessageResponse]:
    messages = await message_service.list_messages(conversation_id, principal, limit, uow)
    return [MessageResponse.model_validate(m) for m in messages]


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    conversation_id: UUID,
    body: SendMessageRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    broadcaster: BroadcasterDep,
    response: Response,
) -> MessageResponse:
    msg, created = await message_service.send_message(
        conversation_id,
        principal,
        body.content,
        SendMetadata(client_id=body.client_id, parent_id=body.parent_id),
        uow,
        broadcaster,
    )
    if not created:
        response.status_code = status.HTTP_200_OK
    return MessageResponse.model_validate(msg)


@router.post("/messages/{message_id}/reactions", response_model=ToggleReactionResponse)
async def toggle_reaction(
    message_id: UUID,
    body: ToggleReactionRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    broadcaster: BroadcasterDep,
) -> ToggleReactionResponse:
    added, reaction = await reaction_service.toggle_reaction(
        message_id, body.emoji, principal, uow, broadcaster,
    )
    return ToggleReactionResponse(
        added=added,
        reaction=ReactionResponse.model_validate(reaction) if reaction else None,
    )


@router.get("/messages/reactions", response_model=list[MessageReactionsResponse])
async def list_reactions(
    principal: CurrentPrincipal,
    uow: UoWDep,
    message_id: list[UUID] = Query([]),
) -> list[MessageReactionsResponse]:
    grouped = await reaction_service.list_reactions(message_id, principal, uow)
    return [
        MessageReactionsResponse(
            message_id=mid,
            groups=[
                ReactionGroupResponse.model_validate(g)
                for g in reaction_service.group_reactions(reactions, principal.user_id)
            ],
        )
        for mid, reactions in grouped.items()
    ]
