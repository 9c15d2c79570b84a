"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated, AsyncIterator

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from echoworld_chat.application.dto.principal import Principal
from echoworld_chat.application.policies.permissions import require_principal
from echoworld_chat.application.ports.auth import TokenVerifier
from echoworld_chat.application.uow import UnitOfWork
from echoworld_chat.config import settings
from echoworld_chat.infrastructure.auth.hs256_verifier import HS256Verifier
from echoworld_chat.infrastructure.db.uow import open_uow
from echoworld_chat.realtime.broadcaster import RealtimeBroadcaster

_bearer_scheme = HTTPBearer(auto_error=False)


async def get_uow() -> AsyncIterator[UnitOfWork]:
    async with open_uow() as uow:
        yield uow


UoWDep = Annotated[UnitOfWork, Depends(get_uow)]


_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    global _verifier  # noqa: PLW0603
    if _verifier is None:
        _verifier = HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM)
    return _verifier


async def get_optional_principal(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer_scheme)],
) -> Principal | None:
    """None when no bearer token is sent; an invalid token raises AuthenticationError."""
    if credentials is None:
        return None
    return await get_verifier().verify(credentials.credentials)


OptionalPrincipal = Annotated[Principal | None, Depends(get_optional_principal)]


async def get_current_principal(principal: OptionalPrincipal) -> Principal:
    return require_principal(principal)


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


def get_broadcaster(request: Request) -> RealtimeBroadcaster | None:
    return getattr(request.app.state, "broadcaster", None)


BroadcasterDep = Annotated[RealtimeBroadcaster | None, Depends(get_broadcaster)]
