"""Discount voucher: percentage/fixed discount, expiry, usage budget and eligibility rules."""
from datetime import datetime

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from app.core.clock import utcnow

DISCOUNT_PERCENTAGE = "percentage"
DISCOUNT_FIXED = "fixed"
DISCOUNT_TYPES = (DISCOUNT_PERCENTAGE, DISCOUNT_FIXED)


class Voucher(SQLModel, table=True):
    """Created by an admin, redeemed when a payment is confirmed."""

    id: int | None = Field(default=None, primary_key=True)
    code: str = Field(unique=True, index=True, max_length=64)  # stored upper-cased, e.g. SAVE10
    discount_type: str = Field(max_length=16)  # "percentage" | "fixed"
    discount_value: float = Field(default=0, ge=0)  # percentage: 0-100, fixed: Naira
    expiry_date: datetime
    usage_limit: int = Field(default=0, ge=0)  # 0 = unlimited
    usage_count: int = Field(default=0)
    once_per_user: bool = False
    # Solution ids; empty = every solution
    applicable_items: list[int] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    # Lower-cased emails; empty = everyone
    applicable_emails: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    min_cart_amount: float = Field(default=0, ge=0)
    for_new_users: bool = False
    created_at: datetime | None = Field(default_factory=utcnow)
    updated_at: datetime | None = Field(default_factory=utcnow)
