from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.schemas.solution import Slug


class WebinarCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(min_length=1, max_length=200)
    category: str = Field(min_length=1, max_length=100)
    amount: float = Field(ge=0)
    slug: Slug | None = None
    image: str | None = Field(default=None, max_length=500)


class WebinarOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    category: str
    amount: float
    slug: str
    image: str | None = None
    created_at: datetime | None = None


class WebinarPaymentRequest(BaseModel):
    """Webinar checkout form; the amount is taken from the webinar, never from the client."""

    model_config = ConfigDict(populate_by_name=True)

    first_name: str = Field(alias="firstName", min_length=1, max_length=100)
    last_name: str = Field(alias="lastName", min_length=1, max_length=100)
    email: EmailStr
    phone_number: str = Field(alias="phoneNumber", min_length=1, max_length=32)
    webinar_slug: str = Field(alias="webinarSlug", min_length=1, max_length=200)
    callback_url: str | None = Field(default=None, max_length=500)


class WebinarPaymentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    first_name: str
    last_name: str
    email: str
    phone_number: str
    webinar_title: str
    webinar_slug: str
    amount: float
    payment_status: str
    payment_reference: str | None = None
    payment_method: str | None = None
    transaction_date: datetime | None = None
    created_at: datetime | None = None


class WebinarVerifyResponse(BaseModel):
    success: bool = True
    message: str
    data: WebinarPaymentOut
