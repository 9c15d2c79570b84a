from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Response, status

from echoworld_chat.api.deps import CurrentPrincipal, UoWDep
from echoworld_chat.api.v1.schemas.common import CountResponse, ReadResponse
from echoworld_chat.api.v1.schemas.conversation import (
    ConversationResponse,
    DirectConversationResponse,
    MemberResponse,
    StartDirectRequest,
)
from echoworld_chat.services import conversation_service, message_service, read_state_service

router = APIRouter(prefix="/api/v1/conversations", tags=["conversations"])


@router.get("", response_model=list[ConversationResponse])
async def list_conversations(
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> list[ConversationResponse]:
    summaries = await conversation_service.list_conversations(principal, uow)
    return [ConversationResponse.from_summary(s) for s in summaries]


@router.post("/direct", response_model=DirectConversationResponse)
async def start_direct_conversation(
    body: StartDirectRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    response: Response,
) -> DirectConversationResponse:
    result = await conversation_service.start_or_get_direct_conversation(
        principal.user_id,
        body.other_user_id,
        principal,
        uow,
        origin_reference=body.origin_reference,
    )
    if result.created:
        response.status_code = status.HTTP_201_CREATED
    return DirectConversationResponse.model_validate(result)


@router.get("/unread", response_model=CountResponse)
async def count_unread(principal: CurrentPrincipal, uow: UoWDep) -> CountResponse:
    count = await message_service.count_unread(principal.user_id, principal, uow)
    return CountResponse(count=count)


@router.post("/{conversation_id}/read", response_model=ReadResponse)
async def mark_read(
    conversation_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ReadResponse:
    read_at = await read_state_service.mark_read(conversation_id, principal, uow)
    return ReadResponse(read_at=read_at)


@router.get("/{conversation_id}/members", response_model=list[MemberResponse])
async def list_members(
    conversation_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> list[MemberResponse]:
    members = await conversation_service.list_members(conversation_id, principal, uow)
    return [MemberResponse.model_validate(m) for m in members]
