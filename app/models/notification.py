"""In-app notifications for buyers and the admin channel."""
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from app.core.clock import utcnow

ADMIN_RECIPIENT = "admin"


class Notification(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    title: str
    message: str
    type: str = Field(index=True)  # success | error | info | warning
    is_read: bool = Field(default=False, index=True)
    related_data: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=utcnow, index=True)


class NotificationRecipient(SQLModel, table=True):
    """One row per recipient: a user id as string, or "admin"."""

    __tablename__ = "notification_recipient"

    id: int | None = Field(default=None, primary_key=True)
    notification_id: int = Field(foreign_key="notification.id", index=True)
    recipient: str = Field(index=True)
