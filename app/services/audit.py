import logging

from sqlmodel import Session

from app.models import AuditLog
from app.services.results import SideEffectResult

log = logging.getLogger("credulen")


def record_audit(
    db: Session,
    event: str,
    user_id: int | None = None,
    ip: str | None = None,
    reference: str | None = None,
) -> SideEffectResult:
    """Audit rows never fail the request that writes them."""
    try:
        db.add(AuditLog(event=event, user_id=user_id, ip=ip or None, reference=reference))
        db.commit()
    except Exception as e:
        db.rollback()
        log.warning("AuditLog write failed: event=%s %s", event, e)
        return SideEffectResult.failure("audit", str(e)[:200])
    return SideEffectResult.success("audit", detail=event)
