from datetime import datetime

from sqlmodel import Field, SQLModel

from app.core.clock import utcnow


class ProcessedPayment(SQLModel, table=True):
    """Idempotency ledger: a live row for a reference means "already processed, do not repeat side effects"."""

    __tablename__ = "processed_payment"

    id: int | None = Field(default=None, primary_key=True)
    # Unique: the insert itself is the concurrency guard
    reference: str = Field(unique=True, index=True)
    processed_at: datetime = Field(default_factory=utcnow)
    expires_at: datetime = Field(index=True)
