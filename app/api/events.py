import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlmodel import Session, select

from app.core.clock import utcnow
from app.core.database import get_db
from app.core.errors import ConflictError
from app.core.rate_limit import client_ip
from app.models import Event, EventRegistration
from app.schemas import EventOut, EventRegistrationCreate, EventRegistrationOut
from app.services.audit import record_audit
from app.services.email_sender import Mailer, build_event_registration_email_html, get_mailer, send_with_retry

router = APIRouter(prefix="/api/events", tags=["events"])
log = logging.getLogger("credulen")


def _event_by_slug(db: Session, slug: str) -> Event:
    event = db.exec(select(Event).where(Event.slug == slug.strip().lower())).first()
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


@router.get("", response_model=list[EventOut])
def list_events(
    db: Session = Depends(get_db),
    upcoming: bool = False,
    event_type: str | None = Query(None, alias="eventType"),
    limit: int = Query(50, ge=1, le=200),
):
    stmt = select(Event)
    if upcoming:
        stmt = stmt.where(Event.date > utcnow()).order_by(Event.date)
    else:
        stmt = stmt.order_by(Event.date.desc(), Event.id.desc())
    if event_type:
        stmt = stmt.where(Event.event_type == event_type.strip().lower())
    return list(db.exec(stmt.limit(limit)).all())


@router.get("/{slug}", response_model=EventOut)
def get_event(slug: str, db: Session = Depends(get_db)):
    return _event_by_slug(db, slug)


@router.post("/{slug}/register", response_model=EventRegistrationOut)
def register_for_event(
    slug: str,
    body: EventRegistrationCreate,
    request: Request,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    """One registration per email and event; confirmation email is best-effort."""
    event = _event_by_slug(db, slug)
    email = str(body.email).strip().lower()
    existing = db.exec(
        select(EventRegistration).where(EventRegistration.slug == event.slug, EventRegistration.email == email)
    ).first()
    if existing:
        raise ConflictError("User already registered for this event")
    registration = EventRegistration(
        full_name=body.full_name.strip(),
        email=email,
        company=body.company,
        reason=body.reason,
        event_title=event.title,
        slug=event.slug,
        event_category=event.category,
    )
    db.add(registration)
    db.commit()
    db.refresh(registration)
    log.info("Event registration: event=%s email=%s", event.slug, email)

    subject, html = build_event_registration_email_html(registration.full_name, event.title, event.date, event.venue)
    delivery = send_with_retry(mailer, email, subject, html)
    if not delivery.sent:
        log.error("Event registration email not delivered: event=%s email=%s", event.slug, email)
    record_audit(db, "event_registration", None, client_ip(request), event.slug)
    return registration
