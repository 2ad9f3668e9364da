from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class PaymentInitiateRequest(BaseModel):
    """Checkout form: buyer details, the solution and an optional voucher. camelCase on the wire."""

    model_config = ConfigDict(populate_by_name=True)

    first_name: str = Field(alias="firstName", min_length=1, max_length=100)
    last_name: str = Field(default="", alias="lastName", max_length=100)
    email: EmailStr
    phone_number: str | None = Field(default=None, alias="phoneNumber", max_length=32)
    employment_status: str | None = Field(default=None, alias="employmentStatus", max_length=100)
    job_title: str | None = Field(default=None, alias="jobTitle", max_length=100)
    solution_id: int = Field(alias="solutionId", gt=0)
    voucher_code: str | None = Field(default=None, alias="voucherCode", max_length=64)
    callback_url: str | None = Field(default=None, max_length=500)

    @field_validator("first_name")
    @classmethod
    def first_name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("First name is required")
        return v


class DiscountPreviewRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    voucher_code: str | None = Field(default=None, alias="voucherCode", max_length=64)
    solution_id: int = Field(alias="solutionId", gt=0)
    email: EmailStr


class DiscountPreviewResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    original_amount: float = Field(serialization_alias="originalAmount")
    discounted_amount: float = Field(serialization_alias="discountedAmount")
    discount: float = 0
    voucher_code: str | None = Field(default=None, serialization_alias="voucherCode")


class PaymentInitiateResponse(BaseModel):
    authorization_url: str
    reference: str


class RegistrationOut(BaseModel):
    """Order as returned to the buyer (free registration) and to the admin listing."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    first_name: str
    last_name: str
    email: str
    phone_number: str | None = None
    employment_status: str | None = None
    job_title: str | None = None
    solution_id: int
    selected_solution: str
    solution_type: str | None = None
    slug: str
    base_amount: float
    final_amount: float
    voucher_code: str | None = None
    payment_status: str
    payment_reference: str | None = None
    payment_method: str | None = None
    payment_date: datetime | None = None
    submitted_at: datetime | None = None


class FreeRegistrationResponse(BaseModel):
    success: bool = True
    message: str = "Registration successful"
    data: RegistrationOut


class VerifiedPayment(BaseModel):
    amount: float
    selectedSolution: str
    email: str
    paymentDate: str


class PaymentVerifyResponse(BaseModel):
    success: bool = True
    message: str
    data: VerifiedPayment | None = None


class PaymentListResponse(BaseModel):
    items: list[RegistrationOut]
    total: int
    page: int
    limit: int
    pages: int
