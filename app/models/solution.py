"""Paid "solution": training course or consulting service sold through Paystack."""
from datetime import datetime

from sqlmodel import Field, SQLModel

from app.core.clock import utcnow


class Solution(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    title: str = Field(unique=True, index=True, max_length=100)
    slug: str = Field(unique=True, index=True)  # lowercase, digits and hyphens
    content: str = ""
    category: str = "Uncategorized"
    solution_type: str | None = None  # "training school" | "consulting service"
    price: float = Field(default=0, ge=0)  # canonical price in Naira
    status: str = "draft"  # draft | published | archived
    is_active: bool = True
    created_at: datetime | None = Field(default_factory=utcnow)
    updated_at: datetime | None = Field(default_factory=utcnow)
