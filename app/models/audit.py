from datetime import datetime

from sqlmodel import Field, SQLModel

from app.core.clock import utcnow


class AuditLog(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    event: str = Field(index=True)  # register, login, payment_initiated, payment_completed, ...
    user_id: int | None = Field(default=None, index=True)
    ip: str | None = None
    reference: str | None = Field(default=None, index=True)  # payment reference when relevant
    created_at: datetime = Field(default_factory=utcnow)
