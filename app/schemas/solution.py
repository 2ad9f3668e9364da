import re
from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
SOLUTION_STATUSES = ("draft", "published", "archived")


def slugify(value: str) -> str:
    """Lowercase, hyphen separated: "Data Science 101" -> "data-science-101"."""
    return re.sub(r"[^a-z0-9]+", "-", (value or "").lower()).strip("-")


def _check_slug(v: str) -> str:
    v = v.strip().lower()
    if not SLUG_RE.match(v):
        raise ValueError("Slug can only contain lowercase letters, numbers and hyphens")
    return v


def _check_status(v: str) -> str:
    v = v.strip().lower()
    if v not in SOLUTION_STATUSES:
        raise ValueError("Status must be draft, published or archived")
    return v


Slug = Annotated[str, AfterValidator(_check_slug)]
Status = Annotated[str, AfterValidator(_check_status)]


class SolutionCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(min_length=1, max_length=100)
    slug: Slug | None = None
    content: str = ""
    category: str = "Uncategorized"
    solution_type: str | None = Field(default=None, alias="solutionType")
    price: float = Field(default=0, ge=0)
    status: Status = "draft"
    is_active: bool = Field(default=True, alias="isActive")


class SolutionUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str | None = Field(default=None, min_length=1, max_length=100)
    slug: Slug | None = None
    content: str | None = None
    category: str | None = None
    solution_type: str | None = Field(default=None, alias="solutionType")
    price: float | None = Field(default=None, ge=0)
    status: Status | None = None
    is_active: bool | None = Field(default=None, alias="isActive")


class SolutionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    slug: str
    content: str
    category: str
    solution_type: str | None = None
    price: float
    status: str
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None
