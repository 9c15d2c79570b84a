from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from uuid import UUID


@dataclass(frozen=True, slots=True)
class SendMetadata:
    """Idempotency and reply linkage carried in the message payload."""

    client_id: str | None = None
    parent_id: UUID | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if self.client_id:
            payload["client_id"] = self.client_id
        if self.parent_id is not None:
            payload["parent_id"] = str(self.parent_id)
        return payload
