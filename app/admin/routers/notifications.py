from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session

from app.core.database import get_db
from app.models.notification import ADMIN_RECIPIENT
from app.schemas import MarkAllReadResponse, NotificationOut
from app.services import notifications

router = APIRouter()


@router.get("", response_model=list[NotificationOut])
def admin_notifications(
    db: Session = Depends(get_db),
    search: str | None = Query(None, max_length=100),
    limit: int = Query(notifications.DEFAULT_LIST_LIMIT, ge=1, le=200),
):
    return notifications.list_for(db, ADMIN_RECIPIENT, search=search, limit=limit)


@router.put("/mark-all-read", response_model=MarkAllReadResponse)
def admin_mark_all_read(db: Session = Depends(get_db)):
    return MarkAllReadResponse(updated=notifications.mark_all_read(db, ADMIN_RECIPIENT))


@router.put("/{notification_id}/read", response_model=NotificationOut)
def admin_mark_read(notification_id: int, db: Session = Depends(get_db)):
    notification = notifications.mark_read(db, notification_id, ADMIN_RECIPIENT)
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification


@router.delete("/{notification_id}")
def admin_delete_notification(notification_id: int, db: Session = Depends(get_db)):
    if not notifications.delete_for(db, notification_id, ADMIN_RECIPIENT):
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"success": True, "message": "Notification deleted"}
