from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from app.core.clock import utcnow

PAYMENT_PENDING = "pending"
PAYMENT_COMPLETED = "completed"
PAYMENT_FAILED = "failed"


class SolutionRegistration(SQLModel, table=True):
    """A buyer's order for a solution: pending until Paystack confirms, then completed exactly once."""

    __tablename__ = "solution_registration"

    id: int | None = Field(default=None, primary_key=True)
    first_name: str
    last_name: str = ""
    email: str = Field(index=True)  # lower-cased
    phone_number: str | None = None
    employment_status: str | None = None
    job_title: str | None = None
    solution_id: int = Field(foreign_key="solution.id", index=True)
    selected_solution: str = ""  # solution title at purchase time
    solution_type: str | None = None
    slug: str = ""
    base_amount: float = 0  # Naira, before voucher
    final_amount: float = 0  # Naira, after voucher
    voucher_code: str | None = Field(default=None, index=True, max_length=64)
    payment_status: str = Field(default=PAYMENT_PENDING, index=True)  # pending | completed | failed
    # Set once Paystack returns one; unique (NULLs allowed for free orders)
    payment_reference: str | None = Field(default=None, unique=True, index=True)
    payment_method: str | None = None  # Paystack channel: card, bank, ussd, ... or "free"
    payment_date: datetime | None = None
    payment_details: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))
    submitted_at: datetime | None = Field(default_factory=utcnow)
