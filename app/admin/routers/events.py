"""Event management and attendee lists."""
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import delete
from sqlmodel import Session, select

from app.core.database import get_db
from app.core.errors import ConflictError
from app.models import Event, EventRegistration
from app.schemas import EventCreate, EventOut, EventRegistrationOut
from app.schemas.solution import slugify

router = APIRouter()
log = logging.getLogger("credulen")


@router.post("", response_model=EventOut, status_code=201)
def event_create(body: EventCreate, db: Session = Depends(get_db)):
    slug = slugify(body.slug or body.title)
    if not slug:
        raise HTTPException(status_code=400, detail="Could not derive a slug from the title")
    if db.exec(select(Event).where(Event.slug == slug)).first():
        raise ConflictError("An event with this slug already exists")
    event = Event(
        title=body.title.strip(),
        event_type=body.event_type,
        content=body.content,
        category=body.category,
        date=body.date,
        venue=body.venue,
        meeting_link=body.meeting_link,
        meeting_id=body.meeting_id,
        passcode=body.passcode,
        slug=slug,
    )
    db.add(event)
    db.commit()
    db.refresh(event)
    log.info("Event created: id=%s slug=%s date=%s", event.id, event.slug, event.date)
    return event


@router.delete("/{slug}")
def event_delete(slug: str, db: Session = Depends(get_db)):
    """Deletes the event together with its registrations."""
    event = db.exec(select(Event).where(Event.slug == slug)).first()
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    result = db.exec(delete(EventRegistration).where(EventRegistration.slug == slug))
    db.delete(event)
    db.commit()
    log.info("Event deleted: slug=%s registrations_removed=%s", slug, result.rowcount or 0)
    return {"ok": True}


@router.get("/{slug}/registrations", response_model=list[EventRegistrationOut])
def event_registrations(slug: str, db: Session = Depends(get_db)):
    if not db.exec(select(Event.id).where(Event.slug == slug)).first():
        raise HTTPException(status_code=404, detail="Event not found")
    stmt = (
        select(EventRegistration)
        .where(EventRegistration.slug == slug)
        .order_by(EventRegistration.registration_date.desc())
    )
    return list(db.exec(stmt).all())
