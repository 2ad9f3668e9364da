"""Unhandled exceptions, one row each; written by the global exception handler in app.main."""
from datetime import datetime

from sqlmodel import Field, SQLModel

from app.core.clock import utcnow


class ErrorLog(SQLModel, table=True):
    __tablename__ = "error_logs"

    id: int | None = Field(default=None, primary_key=True)
    request_id: str | None = Field(default=None, index=True)  # X-Request-ID of the failed request
    endpoint: str | None = None
    method: str | None = None
    error_type: str | None = None
    error_message: str | None = None
    stack_trace: str | None = None
    created_at: datetime = Field(default_factory=utcnow, index=True)
