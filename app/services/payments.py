"""
Payment orchestration: initiation (free or via Paystack) and verification.

Verification is at-most-once per reference:
1. a non-expired ledger row short-circuits before the gateway is called,
2. the ledger claim (INSERT on a unique reference) picks a single winner,
3. the order moves pending -> completed through a conditional UPDATE.
Only the request that wins both steps runs the side effects (voucher, user,
email, notifications, audit). Side effects are best-effort: each one reports a
SideEffectResult and none of them can undo the completed order.
"""
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, NoReturn

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.core.clock import utcnow
from app.core.config import settings
from app.core.errors import NotFoundError, PaymentInitiationError, PaymentVerificationError, VoucherRejected
from app.models import Solution, SolutionRegistration, User
from app.models.registration import PAYMENT_COMPLETED, PAYMENT_PENDING
from app.schemas.payment import PaymentInitiateRequest
from app.services import ledger, notifications
from app.services.audit import record_audit
from app.services.email_sender import Mailer, build_payment_success_email_html, send_with_retry
from app.services.paystack import PaystackClient, PaystackError, VerifiedTransaction, to_kobo
from app.services.results import SideEffectResult
from app.services.voucher import LIMIT_REACHED, PriceQuote, quote_price, redeem_voucher

log = logging.getLogger("credulen.payments")

PAYMENT_METHOD_FREE = "free"
SOLUTION_NOT_FOUND = "Solution not found"
INITIALIZE_FAILED = "Failed to initialize payment"
VERIFICATION_FAILED = "Payment verification failed"


@dataclass
class InitiationResult:
    registration: SolutionRegistration
    authorization_url: str | None = None
    reference: str | None = None
    side_effects: list[SideEffectResult] = field(default_factory=list)

    @property
    def free(self) -> bool:
        return self.authorization_url is None


@dataclass
class VerificationResult:
    reference: str
    registration: SolutionRegistration | None = None
    already_processed: bool = False
    side_effects: list[SideEffectResult] = field(default_factory=list)

    def payload(self) -> dict[str, Any] | None:
        reg = self.registration
        if reg is None:
            return None
        paid_at = reg.payment_date or utcnow()
        return {
            "amount": reg.final_amount,
            "selectedSolution": reg.selected_solution or "N/A",
            "email": reg.email or "N/A",
            "paymentDate": paid_at.isoformat(),
        }


class PaymentService:
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

    # ---------- pricing ----------
    def _active_solution(self, solution_id: int) -> Solution:
        solution = self.db.get(Solution, solution_id)
        if not solution or not solution.is_active:
            raise NotFoundError(SOLUTION_NOT_FOUND)
        return solution

    def preview(self, solution_id: int, email: str, voucher_code: str | None) -> PriceQuote:
        """Same pricing path as initiate, without persisting anything."""
        solution = self._active_solution(solution_id)
        return quote_price(self.db, solution, email.strip().lower(), voucher_code)

    # ---------- initiation ----------
    def initiate(self, body: PaymentInitiateRequest, ip: str | None = None) -> InitiationResult:
        email = body.email.strip().lower()
        solution = self._active_solution(body.solution_id)
        quote = quote_price(self.db, solution, email, body.voucher_code)
        reg = SolutionRegistration(
            first_name=body.first_name.strip(),
            last_name=(body.last_name or "").strip(),
            email=email,
            phone_number=body.phone_number,
            employment_status=body.employment_status,
            job_title=body.job_title,
            solution_id=solution.id,
            selected_solution=solution.title,
            solution_type=solution.solution_type,
            slug=solution.slug,
            base_amount=quote.base_amount,
            final_amount=quote.final_amount,
            voucher_code=quote.voucher_code,
        )
        if quote.final_amount <= 0:
            return self._complete_free(reg, ip)

        reg.payment_status = PAYMENT_PENDING
        self.db.add(reg)
        self.db.commit()
        self.db.refresh(reg)

        metadata = {
            "registrationId": reg.id,
            "fullName": f"{reg.first_name} {reg.last_name}".strip(),
            "solutionId": solution.id,
            "voucherCode": reg.voucher_code,
        }
        callback_url = (body.callback_url or "").strip() or settings.paystack_callback_url or None
        try:
            tx = self.gateway.initialize_transaction(
                email=email,
                amount_kobo=to_kobo(reg.final_amount),
                callback_url=callback_url,
                metadata=metadata,
            )
        except PaystackError as e:
            log.error("Paystack initialize failed: registration_id=%s error=%s", reg.id, e)
            self.db.delete(reg)
            self.db.commit()
            raise PaymentInitiationError(INITIALIZE_FAILED) from e

        reg.payment_reference = tx.reference
        self.db.add(reg)
        self.db.commit()
        self.db.refresh(reg)
        log.info("Payment initiated: registration_id=%s reference=%s amount=%s", reg.id, tx.reference, reg.final_amount)

        user = self._find_user(email)
        effects = [
            notifications.emit(self.db, notifications.payment_initiated(reg, user), "initiated_notifications"),
            record_audit(self.db, "payment_initiated", user.id if user else None, ip, tx.reference),
        ]
        return InitiationResult(
            registration=reg,
            authorization_url=tx.authorization_url,
            reference=tx.reference,
            side_effects=effects,
        )

    def _complete_free(self, reg: SolutionRegistration, ip: str | None) -> InitiationResult:
        # Usage is claimed before the order exists; losing the last use rejects the order
        if reg.voucher_code and not redeem_voucher(self.db, reg.voucher_code):
            raise VoucherRejected(LIMIT_REACHED)
        now = utcnow()
        reg.payment_status = PAYMENT_COMPLETED
        reg.payment_method = PAYMENT_METHOD_FREE
        reg.payment_date = now
        self.db.add(reg)
        self.db.commit()
        self.db.refresh(reg)
        log.info("Free registration completed: registration_id=%s voucher=%s", reg.id, reg.voucher_code)

        user = self._find_user(reg.email)
        effects = [
            self._send_confirmation(reg, None),
            notifications.emit(self.db, notifications.free_registration_completed(reg, user), "success_notifications"),
            record_audit(self.db, "free_registration_completed", user.id if user else None, ip),
        ]
        return InitiationResult(registration=reg, side_effects=effects)

    # ---------- verification ----------
    def verify(self, reference: str, ip: str | None = None) -> VerificationResult:
        reference = (reference or "").strip()
        if not reference:
            raise PaymentVerificationError("No reference provided")
        if ledger.is_processed(self.db, reference):
            log.info("Payment %s already processed", reference)
            return VerificationResult(reference, self._by_reference(reference), already_processed=True)

        try:
            tx = self.gateway.verify_transaction(reference)
        except PaystackError as e:
            self._fail(reference, str(e))
        if not tx.successful:
            self._fail(reference, f"Payment not successful: status={tx.status}")
        reg = self._locate(tx, reference)
        if reg is None:
            self._fail(reference, "Registration not found")
        expected = to_kobo(reg.final_amount)
        if tx.amount != expected:
            self._fail(reference, f"Amount mismatch: paid={tx.amount} expected={expected} kobo", reg)

        if not ledger.claim(self.db, reference, self.ttl):
            return VerificationResult(reference, self._by_reference(reference) or reg, already_processed=True)

        now = utcnow()
        try:
            changed = self._mark_completed(reg.id, tx, reference, now)
        except Exception:
            self.db.rollback()
            ledger.release(self.db, reference)
            raise
        self.db.refresh(reg)
        if not changed:
            log.info("Registration %s already completed; reference %s skipped", reg.id, reference)
            return VerificationResult(reference, reg, already_processed=True)

        log.info("Payment verified: registration_id=%s reference=%s channel=%s", reg.id, reference, tx.channel)
        effects: list[SideEffectResult] = []
        if reg.voucher_code:
            effects.append(self._redeem(reg.voucher_code, reference))
        user, user_effect = self._find_or_create_user(reg)
        effects.append(user_effect)
        effects.append(self._send_confirmation(reg, reference))
        effects.append(
            notifications.emit(self.db, notifications.payment_succeeded(reg, user), "success_notifications")
        )
        effects.append(record_audit(self.db, "payment_completed", user.id if user else None, ip, reference))
        failed = [e.name for e in effects if not e.ok]
        if failed:
            log.warning("Payment %s completed with failed side effects: %s", reference, ", ".join(failed))
        return VerificationResult(reference, reg, side_effects=effects)

    def _fail(self, reference: str, error: str, reg: SolutionRegistration | None = None) -> NoReturn:
        """Failure path: notify buyer and admin when the order is known, then raise."""
        log.error("Payment verification error: reference=%s %s", reference, error)
        self.db.rollback()
        if reg is None:
            reg = self._by_reference(reference)
        if reg is not None:
            user = self._find_user(reg.email)
            notifications.emit(self.db, notifications.payment_failed(reg, user, reference), "failure_notifications")
        raise PaymentVerificationError(VERIFICATION_FAILED)

    def _locate(self, tx: VerifiedTransaction, reference: str) -> SolutionRegistration | None:
        raw_id = tx.metadata.get("registrationId")
        if raw_id not in (None, ""):
            try:
                reg = self.db.get(SolutionRegistration, int(raw_id))
            except (TypeError, ValueError):
                reg = None
            if reg is not None:
                return reg
        return self._by_reference(reference)

    def _by_reference(self, reference: str) -> SolutionRegistration | None:
        return self.db.exec(
            select(SolutionRegistration).where(SolutionRegistration.payment_reference == reference)
        ).first()

    def _mark_completed(self, registration_id: int, tx: VerifiedTransaction, reference: str, now: datetime) -> bool:
        stmt = (
            update(SolutionRegistration)
            .where(SolutionRegistration.id == registration_id)
            .where(SolutionRegistration.payment_status != PAYMENT_COMPLETED)
            .values(
                payment_status=PAYMENT_COMPLETED,
                payment_reference=reference,
                payment_method=tx.channel,
                payment_date=now,
                payment_details=tx.raw,
            )
            .execution_options(synchronize_session=False)
        )
        result = self.db.exec(stmt)
        self.db.commit()
        return (result.rowcount or 0) == 1

    # ---------- side effects ----------
    def _redeem(self, code: str, reference: str) -> SideEffectResult:
        try:
            redeemed = redeem_voucher(self.db, code)
        except Exception as e:
            self.db.rollback()
            log.exception("Voucher redemption failed: code=%s reference=%s", code, reference)
            return SideEffectResult.failure("voucher", str(e)[:200])
        if not redeemed:
            log.warning("Voucher %s not redeemed for %s: limit reached or voucher removed", code, reference)
            return SideEffectResult.failure("voucher", LIMIT_REACHED)
        return SideEffectResult.success("voucher", detail=code)

    def _find_user(self, email: str) -> User | None:
        return self.db.exec(select(User).where(User.email == email)).first()

    def _find_or_create_user(self, reg: SolutionRegistration) -> tuple[User | None, SideEffectResult]:
        user = self._find_user(reg.email)
        if user:
            return user, SideEffectResult.success("user", detail="existing")
        user = User(
            email=reg.email,
            full_name=f"{reg.first_name} {reg.last_name}".strip(),
            first_name=reg.first_name,
            last_name=reg.last_name or None,
            phone_number=reg.phone_number,
        )
        try:
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
        except IntegrityError:
            # Signed up between lookup and insert
            self.db.rollback()
            user = self._find_user(reg.email)
            return user, SideEffectResult.success("user", detail="existing")
        except Exception as e:
            self.db.rollback()
            log.exception("Failed to create user during payment verification: email=%s", reg.email)
            return None, SideEffectResult.failure("user", str(e)[:200])
        log.info("New user created: email=%s", user.email)
        return user, SideEffectResult.success("user", detail="created")

    def _send_confirmation(self, reg: SolutionRegistration, reference: str | None) -> SideEffectResult:
        subject, html = build_payment_success_email_html(
            first_name=reg.first_name,
            last_name=reg.last_name,
            email=reg.email,
            phone_number=reg.phone_number,
            selected_solution=reg.selected_solution,
            amount=reg.final_amount,
            payment_reference=reference,
        )
        delivery = send_with_retry(self.mailer, reg.email, subject, html, sleep=self.sleep)
        if not delivery.sent:
            log.error("Failed to send payment success email after retries: email=%s", reg.email)
            return SideEffectResult.failure("email", delivery.error or "not delivered")
        return SideEffectResult.success("email", detail=f"attempts={delivery.attempts}")
