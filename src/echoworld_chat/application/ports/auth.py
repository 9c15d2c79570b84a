from __future__ import annotations

from typing import Protocol

from echoworld_chat.application.dto.principal import Principal


class TokenVerifier(Protocol):
    async def verify(self, token: str) -> Principal: ...


class IdentityProvider(Protocol):
    """Returns the signed-in caller, or None when anonymous."""

    def __call__(self) -> Principal | None: ...
