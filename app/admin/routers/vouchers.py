"""Voucher management: create, list, update, delete."""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session, select

from app.core.clock import utcnow
from app.core.database import get_db
from app.core.errors import ConflictError
from app.models import Voucher
from app.models.voucher import DISCOUNT_PERCENTAGE
from app.schemas import VoucherCreate, VoucherOut, VoucherUpdate
from app.services.voucher import get_voucher

router = APIRouter()
log = logging.getLogger("credulen")


def _voucher_or_404(db: Session, voucher_id: int) -> Voucher:
    voucher = db.get(Voucher, voucher_id)
    if not voucher:
        raise HTTPException(status_code=404, detail="Voucher not found")
    return voucher


@router.get("", response_model=list[VoucherOut])
def vouchers_list(
    db: Session = Depends(get_db),
    active: bool | None = Query(None, description="true: not expired, false: expired"),
):
    stmt = select(Voucher).order_by(Voucher.id.desc())
    if active is True:
        stmt = stmt.where(Voucher.expiry_date > utcnow())
    elif active is False:
        stmt = stmt.where(Voucher.expiry_date <= utcnow())
    return list(db.exec(stmt).all())


@router.post("", response_model=VoucherOut, status_code=201)
def voucher_create(body: VoucherCreate, db: Session = Depends(get_db)):
    if get_voucher(db, body.code):
        raise ConflictError("Voucher code already exists")
    voucher = Voucher(
        code=body.code,
        discount_type=body.discount_type,
        discount_value=body.discount_value,
        expiry_date=body.expiry_date,
        usage_limit=body.usage_limit,
        once_per_user=body.once_per_user,
        applicable_items=list(body.applicable_items),
        applicable_emails=[str(e).lower() for e in body.applicable_emails],
        min_cart_amount=body.min_cart_amount,
        for_new_users=body.for_new_users,
    )
    db.add(voucher)
    db.commit()
    db.refresh(voucher)
    log.info("Voucher created: code=%s type=%s value=%s", voucher.code, voucher.discount_type, voucher.discount_value)
    return voucher


@router.get("/{voucher_id}", response_model=VoucherOut)
def voucher_detail(voucher_id: int, db: Session = Depends(get_db)):
    return _voucher_or_404(db, voucher_id)


@router.put("/{voucher_id}", response_model=VoucherOut)
def voucher_update(voucher_id: int, body: VoucherUpdate, db: Session = Depends(get_db)):
    voucher = _voucher_or_404(db, voucher_id)
    changes = body.model_dump(exclude_unset=True)
    if "applicable_emails" in changes and changes["applicable_emails"] is not None:
        changes["applicable_emails"] = [str(e).lower() for e in changes["applicable_emails"]]
    for name, value in changes.items():
        if value is not None:
            setattr(voucher, name, value)
    if voucher.discount_type == DISCOUNT_PERCENTAGE and voucher.discount_value > 100:
        raise HTTPException(status_code=400, detail="Percentage discount cannot exceed 100")
    if voucher.usage_limit > 0 and voucher.usage_count > voucher.usage_limit:
        raise HTTPException(
            status_code=400,
            detail=f"Usage limit cannot be below the current usage count ({voucher.usage_count})",
        )
    voucher.updated_at = utcnow()
    db.add(voucher)
    db.commit()
    db.refresh(voucher)
    return voucher


@router.delete("/{voucher_id}")
def voucher_delete(voucher_id: int, db: Session = Depends(get_db)):
    voucher = _voucher_or_404(db, voucher_id)
    code = voucher.code
    db.delete(voucher)
    db.commit()
    log.info("Voucher deleted: code=%s", code)
    return {"ok": True}
