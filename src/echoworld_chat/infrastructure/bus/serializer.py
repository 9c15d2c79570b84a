from __future__ import annotations

import json
from typing import Any
from uuid import UUID
from datetime import datetime


class _Encoder(json.JSONEncoder):
    def default(self, o: object) -> Any:
        if isinstance(o, UUID):
            return str(o)
        if isinstance(o, datetime):
            return o.isoformat()
        return super().default(o)


def dumps(value: Any) -> str:
    return json.dumps(value, cls=_Encoder)


def serialize_event(event_type: str, payload: dict[str, Any]) -> str:
    envelope = {"event": event_type, "data": payload}
    return dumps(envelope)


def deserialize_event(raw: str | bytes) -> tuple[str, dict[str, Any]]:
    """Raises ValueError on anything that is not an ``{event, data}`` envelope."""
    data = json.loads(raw)
    if not isinstance(data, dict) or not isinstance(data.get("data"), dict):
        raise ValueError("Malformed event envelope")
    return str(data.get("event") or ""), data["data"]
