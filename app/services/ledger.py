"""Idempotency ledger for verified payment references.

The claim is an INSERT against a unique column: whichever request commits first
owns the side effects for a reference, everyone else sees a conflict.
"""
import logging
from datetime import datetime, timedelta

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.core.clock import utcnow
from app.models import ProcessedPayment

log = logging.getLogger("credulen.payments")


def is_processed(db: Session, reference: str, now: datetime | None = None) -> bool:
    now = now or utcnow()
    row = db.exec(
        select(ProcessedPayment.id).where(
            ProcessedPayment.reference == reference,
            ProcessedPayment.expires_at > now,
        )
    ).first()
    return row is not None


def purge_expired(db: Session, now: datetime | None = None) -> int:
    now = now or utcnow()
    result = db.exec(delete(ProcessedPayment).where(ProcessedPayment.expires_at <= now))
    db.commit()
    removed = result.rowcount or 0
    if removed:
        log.info("Purged %s expired processed-payment records", removed)
    return removed


def claim(db: Session, reference: str, ttl: timedelta, now: datetime | None = None) -> bool:
    """True if this caller now owns the reference; False if another request already claimed it."""
    now = now or utcnow()
    purge_expired(db, now)
    db.add(ProcessedPayment(reference=reference, processed_at=now, expires_at=now + ttl))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        log.info("Reference %s already claimed by another request", reference)
        return False
    return True


def release(db: Session, reference: str) -> None:
    """Undo a claim when the state transition it guarded did not happen."""
    db.exec(delete(ProcessedPayment).where(ProcessedPayment.reference == reference))
    db.commit()
