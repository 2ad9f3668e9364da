"""Orders & payments: paginated listing with filters, detail by Paystack reference."""
from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_
from sqlmodel import Session, func, select

from app.core.database import get_db
from app.models import SolutionRegistration
from app.models.registration import PAYMENT_COMPLETED, PAYMENT_FAILED, PAYMENT_PENDING
from app.schemas import PaymentListResponse, RegistrationOut

router = APIRouter()

_SORT_COLUMNS = {
    "submitted_at": SolutionRegistration.submitted_at,
    "payment_date": SolutionRegistration.payment_date,
    "final_amount": SolutionRegistration.final_amount,
}


@router.get("", response_model=PaymentListResponse)
def payments_list(
    db: Session = Depends(get_db),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Literal["pending", "completed", "failed"] | None = None,
    solution_id: int | None = Query(None, alias="solutionId"),
    search: str | None = Query(None, max_length=100, description="Email, name or payment reference"),
    date_from: datetime | None = Query(None, alias="from"),
    date_to: datetime | None = Query(None, alias="to"),
    sort: Literal["submitted_at", "payment_date", "final_amount"] = "submitted_at",
    order: Literal["asc", "desc"] = "desc",
):
    conditions = []
    if status:
        conditions.append(SolutionRegistration.payment_status == status)
    if solution_id is not None:
        conditions.append(SolutionRegistration.solution_id == solution_id)
    if search and search.strip():
        term = f"%{search.strip().lower()}%"
        conditions.append(
            or_(
                func.lower(SolutionRegistration.email).like(term),
                func.lower(SolutionRegistration.first_name).like(term),
                func.lower(SolutionRegistration.last_name).like(term),
                func.lower(SolutionRegistration.payment_reference).like(term),
            )
        )
    if date_from:
        conditions.append(SolutionRegistration.submitted_at >= date_from)
    if date_to:
        conditions.append(SolutionRegistration.submitted_at <= date_to)

    total = db.exec(select(func.count(SolutionRegistration.id)).where(*conditions)).one() or 0
    column = _SORT_COLUMNS[sort]
    ordering = column.asc() if order == "asc" else column.desc()
    rows = db.exec(
        select(SolutionRegistration)
        .where(*conditions)
        .order_by(ordering, SolutionRegistration.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return PaymentListResponse(
        items=[RegistrationOut.model_validate(r) for r in rows],
        total=total,
        page=page,
        limit=limit,
        pages=max(1, -(-total // limit)),
    )


@router.get("/summary")
def payments_summary(db: Session = Depends(get_db)):
    """Order counts per status and completed revenue."""
    counts = {
        status: db.exec(
            select(func.count(SolutionRegistration.id)).where(SolutionRegistration.payment_status == status)
        ).one()
        or 0
        for status in (PAYMENT_PENDING, PAYMENT_COMPLETED, PAYMENT_FAILED)
    }
    revenue = db.exec(
        select(func.coalesce(func.sum(SolutionRegistration.final_amount), 0)).where(
            SolutionRegistration.payment_status == PAYMENT_COMPLETED
        )
    ).one()
    return {"counts": counts, "revenue": round(float(revenue or 0), 2)}


@router.get("/{reference}", response_model=RegistrationOut)
def payment_detail(reference: str, db: Session = Depends(get_db)):
    registration = db.exec(
        select(SolutionRegistration).where(SolutionRegistration.payment_reference == reference)
    ).first()
    if not registration:
        raise HTTPException(status_code=404, detail="Payment not found")
    return registration
