"""Buyer notifications; the admin channel lives under /admin/notifications."""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session

from app.api.deps import get_current_user
from app.core.database import get_db
from app.models import User
from app.schemas import MarkAllReadResponse, NotificationOut
from app.services import notifications

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("/user", response_model=list[NotificationOut])
def list_user_notifications(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    search: str | None = Query(None, max_length=100),
    limit: int = Query(notifications.DEFAULT_LIST_LIMIT, ge=1, le=200),
):
    return notifications.list_for(db, str(user.id), search=search, limit=limit)


@router.put("/user/mark-all-read", response_model=MarkAllReadResponse)
def mark_all_user_notifications_read(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return MarkAllReadResponse(updated=notifications.mark_all_read(db, str(user.id)))


@router.put("/user/{notification_id}/read", response_model=NotificationOut)
def mark_user_notification_read(
    notification_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    notification = notifications.mark_read(db, notification_id, str(user.id))
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification


@router.delete("/user/{notification_id}")
def delete_user_notification(
    notification_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not notifications.delete_for(db, notification_id, str(user.id)):
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"success": True, "message": "Notification deleted"}
