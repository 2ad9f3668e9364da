from datetime import datetime

from sqlmodel import Field, SQLModel

from app.core.clock import utcnow

EVENT_TYPES = ("conference", "workshop", "seminar", "webinar", "other")


class Event(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    title: str
    event_type: str = "other"  # conference | workshop | seminar | webinar | other
    content: str | None = None
    category: str | None = None
    date: datetime | None = Field(default=None, index=True)  # start time, UTC
    venue: str | None = None
    meeting_link: str | None = None
    meeting_id: str | None = None
    passcode: str | None = None
    slug: str = Field(unique=True, index=True)
    created_at: datetime | None = Field(default_factory=utcnow)
    updated_at: datetime | None = Field(default_factory=utcnow)


class EventRegistration(SQLModel, table=True):
    """Attendee sign-up; reminders are sent to these addresses."""

    __tablename__ = "event_registration"

    id: int | None = Field(default=None, primary_key=True)
    full_name: str
    email: str = Field(index=True)
    company: str | None = None
    reason: str | None = None
    event_title: str
    slug: str = Field(index=True)  # event slug
    event_category: str | None = None
    registration_date: datetime = Field(default_factory=utcnow)
