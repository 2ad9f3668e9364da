"""Admin auth: X-Admin-Secret header, compared in constant time."""
import hmac

from fastapi import Header, HTTPException, Request

from app.core.config import settings
from app.services.reminders import ReminderScheduler


def _admin_secret_constant_time_compare(provided: str | None, expected: str | None) -> bool:
    """Timing-safe compare; length mismatch still costs a digest comparison."""
    p = (provided or "").encode("utf-8")
    e = (expected or "").encode("utf-8")
    if len(p) != len(e):
        hmac.compare_digest(e, e)
        return False
    return hmac.compare_digest(p, e)


def require_admin(
    x_admin_secret: str | None = Header(None, alias="X-Admin-Secret"),
) -> None:
    expected = (settings.admin_secret or "").strip()
    if not expected:
        raise HTTPException(status_code=503, detail="Admin API is not configured (ADMIN_SECRET missing)")
    if not _admin_secret_constant_time_compare((x_admin_secret or "").strip(), expected):
        raise HTTPException(status_code=403, detail="Unauthorized")


def get_reminder_scheduler(request: Request) -> ReminderScheduler:
    scheduler = getattr(request.app.state, "reminder_scheduler", None)
    if scheduler is None:
        raise HTTPException(status_code=503, detail="Reminder scheduler is not available")
    return scheduler
