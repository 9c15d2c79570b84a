from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Query, status

from echoworld_chat.api.deps import CurrentPrincipal, UoWDep
from echoworld_chat.api.v1.schemas.common import CountResponse
from echoworld_chat.api.v1.schemas.notification import NotificationResponse
from echoworld_chat.services import notification_service

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationResponse])
async def list_notifications(
    principal: CurrentPrincipal,
    uow: UoWDep,
    limit: int = Query(50, ge=1, le=200),
) -> list[NotificationResponse]:
    items = await notification_service.list_notifications(principal, limit, uow)
    return [NotificationResponse.model_validate(n) for n in items]


@router.get("/unread", response_model=CountResponse)
async def count_unread(principal: CurrentPrincipal, uow: UoWDep) -> CountResponse:
    return CountResponse(count=await notification_service.count_unread(principal, uow))


@router.post("/read-all", status_code=status.HTTP_204_NO_CONTENT)
async def mark_all_read(principal: CurrentPrincipal, uow: UoWDep) -> None:
    await notification_service.mark_all_read(principal, uow)


@router.post("/{notification_id}/read", status_code=status.HTTP_204_NO_CONTENT)
async def mark_read(
    notification_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> None:
    await notification_service.mark_read(notification_id, principal, uow)
