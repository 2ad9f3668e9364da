from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    message: str
    type: str
    is_read: bool
    related_data: dict[str, Any] = {}
    created_at: datetime


class MarkAllReadResponse(BaseModel):
    success: bool = True
    updated: int
