"""
Webinar checkout. Same guarantees as solution orders: the price comes from the
webinar, a failed Paystack initialize deletes the pending payment, and
verification completes a payment at most once (ledger claim, then a
conditional pending -> completed UPDATE).
"""
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import timedelta
from typing import NoReturn

from sqlalchemy import update
from sqlmodel import Session, select

from app.core.clock import utcnow
from app.core.config import settings
from app.core.errors import NotFoundError, PaymentInitiationError, PaymentVerificationError
from app.models import Webinar, WebinarPayment
from app.models.registration import PAYMENT_COMPLETED, PAYMENT_PENDING
from app.schemas.webinar import WebinarPaymentRequest
from app.services import ledger, notifications
from app.services.audit import record_audit
from app.services.email_sender import Mailer, build_webinar_payment_email_html, send_with_retry
from app.services.paystack import PaystackClient, PaystackError, VerifiedTransaction, to_kobo
from app.services.results import SideEffectResult

log = logging.getLogger("credulen.payments")

WEBINAR_NOT_FOUND = "Webinar not found"
PAYMENT_NOT_FOUND = "Payment record not found"
INITIALIZE_FAILED = "Failed to initialize payment"
VERIFICATION_FAILED = "Payment verification failed"


@dataclass
class WebinarCheckout:
    payment: WebinarPayment
    authorization_url: str | None = None
    reference: str | None = None
    side_effects: list[SideEffectResult] = field(default_factory=list)

    @property
    def free(self) -> bool:
        return self.authorization_url is None


@dataclass
class WebinarVerification:
    payment: WebinarPayment
    already_processed: bool = False
    side_effects: list[SideEffectResult] = field(default_factory=list)


def webinar_by_slug(db: Session, slug: str) -> Webinar:
    webinar = db.exec(select(Webinar).where(Webinar.slug == slug.strip().lower())).first()
    if not webinar:
        raise NotFoundError(WEBINAR_NOT_FOUND)
    return webinar


class WebinarPaymentService:
    def __init__(
        self,
        db: Session,
        gateway: PaystackClient,
        mailer: Mailer,
        ttl: timedelta | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.db = db
        self.gateway = gateway
        self.mailer = mailer
        self.ttl = ttl or timedelta(minutes=settings.processed_payment_ttl_minutes)
        self.sleep = sleep

    def initiate(self, body: WebinarPaymentRequest, ip: str | None = None) -> WebinarCheckout:
        webinar = webinar_by_slug(self.db, body.webinar_slug)
        email = str(body.email).strip().lower()
        payment = WebinarPayment(
            first_name=body.first_name.strip(),
            last_name=body.last_name.strip(),
            email=email,
            phone_number=body.phone_number.strip(),
            webinar_id=webinar.id,
            webinar_title=webinar.title,
            webinar_slug=webinar.slug,
            amount=webinar.amount,
            payment_status=PAYMENT_PENDING,
        )
        if payment.amount <= 0:
            return self._complete_free(payment, ip)

        self.db.add(payment)
        self.db.commit()
        self.db.refresh(payment)
        callback_url = (body.callback_url or "").strip() or settings.paystack_callback_url or None
        try:
            tx = self.gateway.initialize_transaction(
                email=email,
                amount_kobo=to_kobo(payment.amount),
                callback_url=callback_url,
                metadata={
                    "webinarPaymentId": payment.id,
                    "webinarTitle": webinar.title,
                    "webinarSlug": webinar.slug,
                },
            )
        except PaystackError as e:
            log.error("Paystack initialize failed: webinar_payment_id=%s error=%s", payment.id, e)
            self.db.delete(payment)
            self.db.commit()
            raise PaymentInitiationError(INITIALIZE_FAILED) from e

        payment.payment_reference = tx.reference
        self.db.add(payment)
        self.db.commit()
        self.db.refresh(payment)
        log.info("Webinar payment initiated: id=%s reference=%s amount=%s", payment.id, tx.reference, payment.amount)
        effects = [record_audit(self.db, "webinar_payment_initiated", None, ip, tx.reference)]
        return WebinarCheckout(payment, tx.authorization_url, tx.reference, effects)

    def _complete_free(self, payment: WebinarPayment, ip: str | None) -> WebinarCheckout:
        payment.payment_status = PAYMENT_COMPLETED
        payment.payment_method = "free"
        payment.transaction_date = utcnow()
        self.db.add(payment)
        self.db.commit()
        self.db.refresh(payment)
        log.info("Free webinar registration: id=%s webinar=%s", payment.id, payment.webinar_slug)
        effects = [
            self._send_confirmation(payment),
            record_audit(self.db, "webinar_free_registration", None, ip),
        ]
        return WebinarCheckout(payment, side_effects=effects)

    def verify(self, reference: str, ip: str | None = None) -> WebinarVerification:
        reference = (reference or "").strip()
        if not reference:
            raise PaymentVerificationError("No reference provided")
        if ledger.is_processed(self.db, reference):
            payment = self._by_reference(reference)
            if payment is not None:
                return WebinarVerification(payment, already_processed=True)

        try:
            tx = self.gateway.verify_transaction(reference)
        except PaystackError as e:
            self._fail(reference, str(e))
        if not tx.successful:
            self._fail(reference, f"Payment not successful: status={tx.status}")
        payment = self._locate(tx, reference)
        if payment is None:
            log.warning("Webinar payment not found for reference %s", reference)
            raise NotFoundError(PAYMENT_NOT_FOUND)
        expected = to_kobo(payment.amount)
        if tx.amount != expected:
            self._fail(reference, f"Amount mismatch: paid={tx.amount} expected={expected} kobo", payment)

        if not ledger.claim(self.db, reference, self.ttl):
            return WebinarVerification(self._by_reference(reference) or payment, already_processed=True)
        try:
            changed = self._mark_completed(payment.id, tx, reference)
        except Exception:
            self.db.rollback()
            ledger.release(self.db, reference)
            raise
        self.db.refresh(payment)
        if not changed:
            return WebinarVerification(payment, already_processed=True)

        log.info("Webinar payment verified: id=%s reference=%s channel=%s", payment.id, reference, tx.channel)
        effects = [
            self._send_confirmation(payment),
            notifications.emit(self.db, notifications.webinar_payment_succeeded(payment), "success_notifications"),
            record_audit(self.db, "webinar_payment_completed", None, ip, reference),
        ]
        failed = [e.name for e in effects if not e.ok]
        if failed:
            log.warning("Webinar payment %s completed with failed side effects: %s", reference, ", ".join(failed))
        return WebinarVerification(payment, side_effects=effects)

    def _fail(self, reference: str, error: str, payment: WebinarPayment | None = None) -> NoReturn:
        log.error("Webinar payment verification error: reference=%s %s", reference, error)
        self.db.rollback()
        if payment is None:
            payment = self._by_reference(reference)
        if payment is not None:
            notifications.emit(self.db, notifications.webinar_payment_failed(payment, reference), "failure_notifications")
        raise PaymentVerificationError(VERIFICATION_FAILED)

    def _locate(self, tx: VerifiedTransaction, reference: str) -> WebinarPayment | None:
        raw_id = tx.metadata.get("webinarPaymentId")
        if raw_id not in (None, ""):
            try:
                payment = self.db.get(WebinarPayment, int(raw_id))
            except (TypeError, ValueError):
                payment = None
            if payment is not None:
                return payment
        return self._by_reference(reference)

    def _by_reference(self, reference: str) -> WebinarPayment | None:
        return self.db.exec(select(WebinarPayment).where(WebinarPayment.payment_reference == reference)).first()

    def _mark_completed(self, payment_id: int, tx: VerifiedTransaction, reference: str) -> bool:
        result = self.db.exec(
            update(WebinarPayment)
            .where(WebinarPayment.id == payment_id)
            .where(WebinarPayment.payment_status != PAYMENT_COMPLETED)
            .values(
                payment_status=PAYMENT_COMPLETED,
                payment_reference=reference,
                payment_method=tx.channel or "unknown",
                transaction_date=utcnow(),
                payment_details=tx.raw,
            )
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return (result.rowcount or 0) == 1

    def _send_confirmation(self, payment: WebinarPayment) -> SideEffectResult:
        subject, html = build_webinar_payment_email_html(
            first_name=payment.first_name,
            last_name=payment.last_name,
            email=payment.email,
            webinar_title=payment.webinar_title,
            amount=payment.amount,
            transaction_date=payment.transaction_date,
            payment_reference=payment.payment_reference,
        )
        delivery = send_with_retry(self.mailer, payment.email, subject, html, sleep=self.sleep)
        if not delivery.sent:
            log.error("Webinar confirmation email not delivered after retries: email=%s", payment.email)
            return SideEffectResult.failure("email", delivery.error or "not delivered")
        return SideEffectResult.success("email", detail=f"attempts={delivery.attempts}")
