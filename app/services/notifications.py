"""Notification writes (payment lifecycle) and per-recipient queries."""
import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import delete, func, update
from sqlmodel import Session, select

from app.core.config import settings
from app.models import Notification, NotificationRecipient, SolutionRegistration, User, WebinarPayment
from app.models.notification import ADMIN_RECIPIENT
from app.services.results import SideEffectResult

log = logging.getLogger("credulen.notifications")

DEFAULT_LIST_LIMIT = 50


@dataclass
class NotificationDraft:
    title: str
    message: str
    type: str
    recipients: list[str]
    related_data: dict[str, Any] = field(default_factory=dict)


def emit(db: Session, drafts: list[NotificationDraft], name: str = "notifications") -> SideEffectResult:
    """Writes the batch in one commit. Drafts without recipients are dropped."""
    drafts = [d for d in drafts if d.recipients]
    if not drafts:
        return SideEffectResult.success(name, detail="no recipients")
    try:
        for draft in drafts:
            notification = Notification(
                title=draft.title,
                message=draft.message,
                type=draft.type,
                related_data=draft.related_data,
            )
            db.add(notification)
            db.flush()
            for recipient in dict.fromkeys(draft.recipients):
                db.add(NotificationRecipient(notification_id=notification.id, recipient=recipient))
        db.commit()
    except Exception as e:
        db.rollback()
        log.exception("Failed to create notifications (%s): %s", name, e)
        return SideEffectResult.failure(name, str(e)[:200])
    return SideEffectResult.success(name, detail=f"{len(drafts)} created")


def _money(amount: float) -> str:
    return f"{settings.currency_symbol}{amount:,.2f}"


def _buyer(user: User | None) -> list[str]:
    return [str(user.id)] if user and user.id is not None else []


def _full_name(reg: SolutionRegistration | WebinarPayment) -> str:
    return f"{reg.first_name} {reg.last_name}".strip()


def payment_initiated(reg: SolutionRegistration, user: User | None) -> list[NotificationDraft]:
    related = {"registrationId": reg.id, "reference": reg.payment_reference}
    return [
        NotificationDraft(
            title="Payment Initiated",
            message=(
                f"You have initiated a payment of {_money(reg.final_amount)} for {reg.selected_solution}. "
                f"Payment Reference: {reg.payment_reference}"
            ),
            type="info",
            recipients=_buyer(user),
            related_data=related,
        ),
        NotificationDraft(
            title="New Payment Initiated",
            message=(
                f"A payment of {_money(reg.final_amount)} has been initiated by {_full_name(reg)} "
                f"for {reg.selected_solution}. Payment Reference: {reg.payment_reference}"
            ),
            type="info",
            recipients=[ADMIN_RECIPIENT],
            related_data=related,
        ),
    ]


def payment_succeeded(reg: SolutionRegistration, user: User | None) -> list[NotificationDraft]:
    related = {"registrationId": reg.id, "reference": reg.payment_reference}
    return [
        NotificationDraft(
            title="Payment Successful",
            message=f"Your payment of {_money(reg.final_amount)} for {reg.selected_solution} was successful",
            type="success",
            recipients=_buyer(user),
            related_data=related,
        ),
        NotificationDraft(
            title="New Payment Received",
            message=(
                f"New payment of {_money(reg.final_amount)} received from {_full_name(reg)} "
                f"for {reg.selected_solution}"
            ),
            type="info",
            recipients=[ADMIN_RECIPIENT],
            related_data=related,
        ),
    ]


def free_registration_completed(reg: SolutionRegistration, user: User | None) -> list[NotificationDraft]:
    related = {"registrationId": reg.id, "voucherCode": reg.voucher_code}
    return [
        NotificationDraft(
            title="Registration Successful",
            message=f"Your registration for {reg.selected_solution} is confirmed",
            type="success",
            recipients=_buyer(user),
            related_data=related,
        ),
        NotificationDraft(
            title="New Free Registration",
            message=f"{_full_name(reg)} registered for {reg.selected_solution} at no cost",
            type="info",
            recipients=[ADMIN_RECIPIENT],
            related_data=related,
        ),
    ]


def payment_failed(reg: SolutionRegistration, user: User | None, reference: str) -> list[NotificationDraft]:
    related = {"registrationId": reg.id, "reference": reference}
    return [
        NotificationDraft(
            title="Payment Failed",
            message="Your payment attempt failed. Please try again or contact support.",
            type="error",
            recipients=_buyer(user),
            related_data=related,
        ),
        NotificationDraft(
            title="Payment Failed",
            message=f"Payment attempt by {_full_name(reg)} failed. Reference: {reference}",
            type="error",
            recipients=[ADMIN_RECIPIENT],
            related_data=related,
        ),
    ]


def webinar_payment_succeeded(payment: WebinarPayment) -> list[NotificationDraft]:
    return [
        NotificationDraft(
            title="New Webinar Payment",
            message=(
                f"New payment of {_money(payment.amount)} received from {_full_name(payment)} "
                f"for {payment.webinar_title}"
            ),
            type="info",
            recipients=[ADMIN_RECIPIENT],
            related_data={"webinarPaymentId": payment.id, "reference": payment.payment_reference},
        )
    ]


def webinar_payment_failed(payment: WebinarPayment, reference: str) -> list[NotificationDraft]:
    return [
        NotificationDraft(
            title="Webinar Payment Failed",
            message=f"Webinar payment by {_full_name(payment)} for {payment.webinar_title} failed. Reference: {reference}",
            type="error",
            recipients=[ADMIN_RECIPIENT],
            related_data={"webinarPaymentId": payment.id, "reference": reference},
        )
    ]


# ---------- Queries: a recipient is a user id string or "admin" ----------
def list_for(db: Session, recipient: str, search: str | None = None, limit: int = DEFAULT_LIST_LIMIT) -> list[Notification]:
    stmt = (
        select(Notification)
        .join(NotificationRecipient, NotificationRecipient.notification_id == Notification.id)
        .where(NotificationRecipient.recipient == recipient)
    )
    if search:
        stmt = stmt.where(func.lower(Notification.message).contains(search.strip().lower()))
    stmt = stmt.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
    return list(db.exec(stmt).all())


def _owned(db: Session, notification_id: int, recipient: str) -> Notification | None:
    link = db.exec(
        select(NotificationRecipient).where(
            NotificationRecipient.notification_id == notification_id,
            NotificationRecipient.recipient == recipient,
        )
    ).first()
    if not link:
        return None
    return db.get(Notification, notification_id)


def mark_read(db: Session, notification_id: int, recipient: str) -> Notification | None:
    notification = _owned(db, notification_id, recipient)
    if not notification:
        return None
    notification.is_read = True
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def mark_all_read(db: Session, recipient: str) -> int:
    ids = select(NotificationRecipient.notification_id).where(NotificationRecipient.recipient == recipient)
    result = db.exec(
        update(Notification)
        .where(Notification.id.in_(ids), Notification.is_read == False)  # noqa: E712
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount or 0


def delete_for(db: Session, notification_id: int, recipient: str) -> bool:
    """Removes the recipient's copy; the notification row goes once nobody holds it."""
    if not _owned(db, notification_id, recipient):
        return False
    db.exec(
        delete(NotificationRecipient).where(
            NotificationRecipient.notification_id == notification_id,
            NotificationRecipient.recipient == recipient,
        )
    )
    remaining = db.exec(
        select(func.count()).select_from(NotificationRecipient).where(NotificationRecipient.notification_id == notification_id)
    ).one()
    if not remaining:
        notification = db.get(Notification, notification_id)
        if notification:
            db.delete(notification)
    db.commit()
    return True
