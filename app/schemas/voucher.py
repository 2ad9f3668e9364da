from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from app.core.clock import to_naive_utc
from app.models.voucher import DISCOUNT_PERCENTAGE, DISCOUNT_TYPES


class VoucherBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    discount_type: str = Field(alias="discountType")
    discount_value: float = Field(alias="discountValue", ge=0)
    expiry_date: datetime = Field(alias="expiryDate")
    usage_limit: int = Field(default=0, alias="usageLimit", ge=0)
    once_per_user: bool = Field(default=False, alias="oncePerUser")
    applicable_items: list[int] = Field(default_factory=list, alias="applicableItems")
    applicable_emails: list[EmailStr] = Field(default_factory=list, alias="applicableEmails")
    min_cart_amount: float = Field(default=0, alias="minCartAmount", ge=0)
    for_new_users: bool = Field(default=False, alias="forNewUsers")

    @field_validator("discount_type")
    @classmethod
    def known_discount_type(cls, v: str) -> str:
        v = (v or "").strip().lower()
        if v not in DISCOUNT_TYPES:
            raise ValueError("Discount type must be 'percentage' or 'fixed'")
        return v

    @field_validator("expiry_date")
    @classmethod
    def naive_utc(cls, v: datetime) -> datetime:
        return to_naive_utc(v)

    @model_validator(mode="after")
    def percentage_at_most_100(self):
        if self.discount_type == DISCOUNT_PERCENTAGE and self.discount_value > 100:
            raise ValueError("Percentage discount cannot exceed 100")
        return self


class VoucherCreate(VoucherBase):
    code: str = Field(min_length=1, max_length=64)

    @field_validator("code")
    @classmethod
    def code_upper(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("Voucher code is required")
        return v


class VoucherUpdate(BaseModel):
    """Partial update; the code itself is immutable."""

    model_config = ConfigDict(populate_by_name=True)

    discount_type: str | None = Field(default=None, alias="discountType")
    discount_value: float | None = Field(default=None, alias="discountValue", ge=0)
    expiry_date: datetime | None = Field(default=None, alias="expiryDate")
    usage_limit: int | None = Field(default=None, alias="usageLimit", ge=0)
    once_per_user: bool | None = Field(default=None, alias="oncePerUser")
    applicable_items: list[int] | None = Field(default=None, alias="applicableItems")
    applicable_emails: list[EmailStr] | None = Field(default=None, alias="applicableEmails")
    min_cart_amount: float | None = Field(default=None, alias="minCartAmount", ge=0)
    for_new_users: bool | None = Field(default=None, alias="forNewUsers")

    @field_validator("discount_type")
    @classmethod
    def known_discount_type(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip().lower()
        if v not in DISCOUNT_TYPES:
            raise ValueError("Discount type must be 'percentage' or 'fixed'")
        return v

    @field_validator("expiry_date")
    @classmethod
    def naive_utc(cls, v: datetime | None) -> datetime | None:
        return to_naive_utc(v) if v is not None else None


class VoucherOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    discount_type: str
    discount_value: float
    expiry_date: datetime
    usage_limit: int
    usage_count: int
    once_per_user: bool
    applicable_items: list[int]
    applicable_emails: list[str]
    min_cart_amount: float
    for_new_users: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None
