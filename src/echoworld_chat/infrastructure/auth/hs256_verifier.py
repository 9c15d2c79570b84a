from __future__ import annotations

from uuid import UUID

import jwt

from echoworld_chat.application.dto.principal import Principal
from echoworld_chat.application.exceptions import AuthenticationError


class HS256Verifier:
    """Verify JWTs signed with a shared HS256 secret; ``sub`` is the user id."""

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self._secret = secret
        self._algorithm = algorithm

    async def verify(self, token: str) -> Principal:
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
            user_id = UUID(str(payload["sub"]))
        except jwt.PyJWTError as exc:
            raise AuthenticationError(str(exc)) from exc
        except (KeyError, ValueError) as exc:
            raise AuthenticationError("Token subject is not a user id") from exc
        roles = payload.get("roles", [])
        return Principal(user_id=user_id, roles=list(roles) if isinstance(roles, list) else [])
