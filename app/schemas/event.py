from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.core.clock import to_naive_utc
from app.models.event import EVENT_TYPES


class EventCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(min_length=1, max_length=200)
    event_type: str = Field(default="other", alias="eventType")
    content: str | None = None
    category: str | None = None
    date: datetime | None = None
    venue: str | None = None
    meeting_link: str | None = Field(default=None, alias="meetingLink")
    meeting_id: str | None = Field(default=None, alias="meetingId")
    passcode: str | None = None
    slug: str | None = None

    @field_validator("event_type")
    @classmethod
    def known_event_type(cls, v: str) -> str:
        v = (v or "").strip().lower()
        if v not in EVENT_TYPES:
            raise ValueError(f"Event type must be one of: {', '.join(EVENT_TYPES)}")
        return v

    @field_validator("date")
    @classmethod
    def naive_utc(cls, v: datetime | None) -> datetime | None:
        return to_naive_utc(v) if v is not None else None


class EventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    event_type: str
    content: str | None = None
    category: str | None = None
    date: datetime | None = None
    venue: str | None = None
    meeting_link: str | None = None
    meeting_id: str | None = None
    passcode: str | None = None
    slug: str
    created_at: datetime | None = None


class EventRegistrationCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    full_name: str = Field(alias="fullName", min_length=1, max_length=200)
    email: EmailStr
    company: str | None = Field(default=None, max_length=200)
    reason: str | None = Field(default=None, max_length=2000)


class EventRegistrationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    full_name: str
    email: str
    company: str | None = None
    reason: str | None = None
    event_title: str
    slug: str
    event_category: str | None = None
    registration_date: datetime
