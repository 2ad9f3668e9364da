"""Paid webinars and the Paystack payments made for them."""
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from app.core.clock import utcnow
from app.models.registration import PAYMENT_PENDING


class Webinar(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    title: str = Field(max_length=200)
    category: str
    amount: float = Field(default=0, ge=0)  # Naira
    slug: str = Field(unique=True, index=True)
    image: str | None = None
    created_at: datetime | None = Field(default_factory=utcnow)
    updated_at: datetime | None = Field(default_factory=utcnow)


class WebinarPayment(SQLModel, table=True):
    """Same lifecycle as a solution order: pending, then completed once Paystack confirms."""

    __tablename__ = "webinar_payment"

    id: int | None = Field(default=None, primary_key=True)
    first_name: str
    last_name: str
    email: str = Field(index=True)  # lower-cased
    phone_number: str
    webinar_id: int = Field(foreign_key="webinar.id", index=True)
    webinar_title: str
    webinar_slug: str = Field(index=True)
    amount: float = 0  # Naira, copied from the webinar at checkout
    payment_status: str = Field(default=PAYMENT_PENDING, index=True)
    payment_reference: str | None = Field(default=None, unique=True, index=True)
    payment_method: str | None = None
    transaction_date: datetime | None = None
    payment_details: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))
    created_at: datetime | None = Field(default_factory=utcnow)
