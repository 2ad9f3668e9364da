"""Voucher validation and discount computation.

``evaluate_voucher`` is pure: every database fact it needs arrives in a
``CartContext``. ``resolve_voucher`` gathers those facts; ``quote_price`` is the
single pricing path shared by the preview endpoint and payment initiation.
"""
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import or_, update
from sqlmodel import Session, select

from app.core.clock import utcnow
from app.core.config import settings
from app.core.errors import VoucherRejected
from app.models import Solution, SolutionRegistration, User, Voucher
from app.models.registration import PAYMENT_COMPLETED
from app.models.voucher import DISCOUNT_FIXED, DISCOUNT_PERCENTAGE

INVALID_CODE = "Invalid voucher code"
EXPIRED = "Voucher has expired"
LIMIT_REACHED = "Voucher usage limit reached"
NEW_USERS_ONLY = "Voucher is only valid for new users"
EMAIL_NOT_ELIGIBLE = "Voucher is not valid for this email"
ITEM_NOT_ELIGIBLE = "Voucher is not valid for this solution"
ALREADY_USED = "Voucher already used"


@dataclass(frozen=True)
class CartContext:
    email: str
    solution_id: int
    amount: float
    is_existing_user: bool = False
    has_redeemed_before: bool = False


@dataclass(frozen=True)
class VoucherEvaluation:
    voucher: Voucher | None
    original_amount: float
    discounted_amount: float
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.reason is None

    @property
    def discount(self) -> float:
        return round(self.original_amount - self.discounted_amount, 2)


@dataclass(frozen=True)
class PriceQuote:
    base_amount: float
    final_amount: float
    voucher_code: str | None = None


def normalize_code(code: str | None) -> str:
    return (code or "").strip().upper()


def apply_discount(amount: float, discount_type: str, discount_value: float) -> float:
    """Discounted price, never below zero, rounded to kobo precision."""
    if discount_type == DISCOUNT_PERCENTAGE:
        result = amount * (1 - discount_value / 100)
    elif discount_type == DISCOUNT_FIXED:
        result = amount - discount_value
    else:
        raise ValueError(f"Unknown discount type: {discount_type}")
    return round(max(result, 0.0), 2)


def _min_amount_reason(min_amount: float) -> str:
    return f"Minimum cart amount of {settings.currency_symbol}{min_amount:,.2f} required"


def evaluate_voucher(voucher: Voucher | None, cart: CartContext, now: datetime | None = None) -> VoucherEvaluation:
    """Check order matters: the first failing rule is the reason reported."""
    now = now or utcnow()

    def reject(reason: str) -> VoucherEvaluation:
        return VoucherEvaluation(voucher=voucher, original_amount=cart.amount, discounted_amount=cart.amount, reason=reason)

    if voucher is None:
        return reject(INVALID_CODE)
    if voucher.expiry_date <= now:
        return reject(EXPIRED)
    if voucher.usage_limit > 0 and voucher.usage_count >= voucher.usage_limit:
        return reject(LIMIT_REACHED)
    if voucher.for_new_users and cart.is_existing_user:
        return reject(NEW_USERS_ONLY)
    emails = [e.lower() for e in (voucher.applicable_emails or [])]
    if emails and cart.email.strip().lower() not in emails:
        return reject(EMAIL_NOT_ELIGIBLE)
    items = voucher.applicable_items or []
    if items and cart.solution_id not in items:
        return reject(ITEM_NOT_ELIGIBLE)
    if cart.amount < (voucher.min_cart_amount or 0):
        return reject(_min_amount_reason(voucher.min_cart_amount))
    if voucher.once_per_user and cart.has_redeemed_before:
        return reject(ALREADY_USED)

    discounted = apply_discount(cart.amount, voucher.discount_type, voucher.discount_value)
    return VoucherEvaluation(voucher=voucher, original_amount=cart.amount, discounted_amount=discounted)


def get_voucher(db: Session, code: str) -> Voucher | None:
    code_upper = normalize_code(code)
    if not code_upper:
        return None
    return db.exec(select(Voucher).where(Voucher.code == code_upper)).first()


def resolve_voucher(
    db: Session,
    code: str,
    email: str,
    solution_id: int,
    amount: float,
    now: datetime | None = None,
) -> VoucherEvaluation:
    email = (email or "").strip().lower()
    voucher = get_voucher(db, code)
    is_existing_user = False
    has_redeemed_before = False
    if voucher is not None:
        is_existing_user = db.exec(select(User.id).where(User.email == email)).first() is not None
        if voucher.once_per_user:
            prior = db.exec(
                select(SolutionRegistration.id).where(
                    SolutionRegistration.email == email,
                    SolutionRegistration.voucher_code == voucher.code,
                    SolutionRegistration.payment_status == PAYMENT_COMPLETED,
                )
            ).first()
            has_redeemed_before = prior is not None
    cart = CartContext(
        email=email,
        solution_id=solution_id,
        amount=amount,
        is_existing_user=is_existing_user,
        has_redeemed_before=has_redeemed_before,
    )
    return evaluate_voucher(voucher, cart, now=now)


def quote_price(db: Session, solution: Solution, email: str, voucher_code: str | None) -> PriceQuote:
    """Canonical price of a solution after an optional voucher. Raises VoucherRejected."""
    base = round(float(solution.price or 0), 2)
    if not normalize_code(voucher_code):
        return PriceQuote(base_amount=base, final_amount=base)
    evaluation = resolve_voucher(db, voucher_code or "", email, solution.id or 0, base)
    if not evaluation.ok:
        raise VoucherRejected(evaluation.reason or INVALID_CODE)
    return PriceQuote(
        base_amount=base,
        final_amount=evaluation.discounted_amount,
        voucher_code=evaluation.voucher.code if evaluation.voucher else None,
    )


def redeem_voucher(db: Session, code: str) -> bool:
    """
    Increments usage_count only while it is below usage_limit (or the voucher is unlimited).
    Single UPDATE statement, so two concurrent redemptions cannot overshoot the limit.
    Returns False when the voucher is gone or already exhausted.
    """
    code_upper = normalize_code(code)
    stmt = (
        update(Voucher)
        .where(Voucher.code == code_upper)
        .where(or_(Voucher.usage_limit == 0, Voucher.usage_count < Voucher.usage_limit))
        .values(usage_count=Voucher.usage_count + 1, updated_at=utcnow())
    )
    result = db.exec(stmt)
    db.commit()
    return (result.rowcount or 0) == 1
