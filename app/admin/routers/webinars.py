"""Webinar catalogue and the payments made for webinars."""
import logging
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session, select

from app.core.database import get_db
from app.core.errors import ConflictError
from app.models import Webinar, WebinarPayment
from app.schemas import WebinarCreate, WebinarOut, WebinarPaymentOut
from app.schemas.solution import slugify

router = APIRouter()
log = logging.getLogger("credulen")


@router.get("", response_model=list[WebinarOut])
def webinars_list(db: Session = Depends(get_db)):
    return list(db.exec(select(Webinar).order_by(Webinar.id.desc())).all())


@router.post("", response_model=WebinarOut, status_code=201)
def webinar_create(body: WebinarCreate, db: Session = Depends(get_db)):
    slug = slugify(body.slug or body.title)
    if not slug:
        raise HTTPException(status_code=400, detail="Could not derive a slug from the title")
    if db.exec(select(Webinar).where(Webinar.slug == slug)).first():
        raise ConflictError("A webinar with this slug already exists")
    webinar = Webinar(
        title=body.title.strip(),
        category=body.category.strip(),
        amount=body.amount,
        slug=slug,
        image=body.image,
    )
    db.add(webinar)
    db.commit()
    db.refresh(webinar)
    log.info("Webinar created: id=%s slug=%s amount=%s", webinar.id, webinar.slug, webinar.amount)
    return webinar


@router.get("/payments", response_model=list[WebinarPaymentOut])
def webinar_payments(
    db: Session = Depends(get_db),
    status: Literal["pending", "completed", "failed"] | None = None,
    slug: str | None = Query(None, max_length=200),
    limit: int = Query(100, ge=1, le=500),
):
    stmt = select(WebinarPayment)
    if status:
        stmt = stmt.where(WebinarPayment.payment_status == status)
    if slug:
        stmt = stmt.where(WebinarPayment.webinar_slug == slug.strip().lower())
    stmt = stmt.order_by(WebinarPayment.created_at.desc(), WebinarPayment.id.desc()).limit(limit)
    return list(db.exec(stmt).all())


@router.delete("/payments/{payment_id}")
def webinar_payment_delete(payment_id: int, db: Session = Depends(get_db)):
    payment = db.get(WebinarPayment, payment_id)
    if not payment:
        raise HTTPException(status_code=404, detail="Webinar payment not found")
    reference = payment.payment_reference
    db.delete(payment)
    db.commit()
    log.info("Webinar payment deleted: id=%s reference=%s", payment_id, reference)
    return {"ok": True}


@router.delete("/{slug}")
def webinar_delete(slug: str, db: Session = Depends(get_db)):
    """Webinars with payments on record are kept."""
    webinar = db.exec(select(Webinar).where(Webinar.slug == slug)).first()
    if not webinar:
        raise HTTPException(status_code=404, detail="Webinar not found")
    if db.exec(select(WebinarPayment.id).where(WebinarPayment.webinar_id == webinar.id)).first():
        raise ConflictError("Webinar has payments and cannot be deleted")
    db.delete(webinar)
    db.commit()
    log.info("Webinar deleted: slug=%s", slug)
    return {"ok": True}
