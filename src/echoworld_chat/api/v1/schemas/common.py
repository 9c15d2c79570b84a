from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class CountResponse(BaseModel):
    count: int


class ReadResponse(BaseModel):
    read_at: datetime
