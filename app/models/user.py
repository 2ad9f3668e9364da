from datetime import datetime

from sqlmodel import Field, SQLModel

from app.core.clock import utcnow


class User(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    email: str = Field(unique=True, index=True)
    # None for buyers created at payment verification (no password chosen yet)
    hashed_password: str | None = None
    full_name: str = ""
    first_name: str | None = None
    last_name: str | None = None
    phone_number: str | None = None
    role: str = "user"  # "user" | "admin"
    created_at: datetime | None = Field(default_factory=utcnow)
    last_login_at: datetime | None = None
