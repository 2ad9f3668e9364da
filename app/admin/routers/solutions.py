"""Catalogue management: create, update, delete solutions."""
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from app.core.clock import utcnow
from app.core.database import get_db
from app.core.errors import ConflictError
from app.models import Solution, SolutionRegistration
from app.schemas import SolutionCreate, SolutionOut, SolutionUpdate
from app.schemas.solution import slugify

router = APIRouter()
log = logging.getLogger("credulen")


def _ensure_unique(db: Session, title: str | None, slug: str | None, exclude_id: int | None = None) -> None:
    if title:
        row = db.exec(select(Solution).where(Solution.title == title)).first()
        if row and row.id != exclude_id:
            raise ConflictError("A solution with this title already exists")
    if slug:
        row = db.exec(select(Solution).where(Solution.slug == slug)).first()
        if row and row.id != exclude_id:
            raise ConflictError("A solution with this slug already exists")


@router.get("", response_model=list[SolutionOut])
def solutions_list(db: Session = Depends(get_db)):
    """Every solution, including drafts and inactive ones."""
    return list(db.exec(select(Solution).order_by(Solution.id.desc())).all())


@router.post("", response_model=SolutionOut, status_code=201)
def solution_create(body: SolutionCreate, db: Session = Depends(get_db)):
    title = body.title.strip()
    slug = body.slug or slugify(title)
    if not slug:
        raise HTTPException(status_code=400, detail="Could not derive a slug from the title")
    _ensure_unique(db, title, slug)
    solution = Solution(
        title=title,
        slug=slug,
        content=body.content,
        category=body.category or "Uncategorized",
        solution_type=body.solution_type,
        price=round(body.price, 2),
        # Free solutions go live immediately
        status="published" if body.price == 0 else body.status,
        is_active=body.is_active,
    )
    db.add(solution)
    db.commit()
    db.refresh(solution)
    log.info("Solution created: id=%s slug=%s price=%s", solution.id, solution.slug, solution.price)
    return solution


@router.put("/{solution_id}", response_model=SolutionOut)
def solution_update(solution_id: int, body: SolutionUpdate, db: Session = Depends(get_db)):
    solution = db.get(Solution, solution_id)
    if not solution:
        raise HTTPException(status_code=404, detail="Solution not found")
    changes = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None}
    if "title" in changes:
        changes["title"] = changes["title"].strip()
    _ensure_unique(db, changes.get("title"), changes.get("slug"), exclude_id=solution.id)
    if "price" in changes:
        changes["price"] = round(changes["price"], 2)
    for name, value in changes.items():
        setattr(solution, name, value)
    solution.updated_at = utcnow()
    db.add(solution)
    db.commit()
    db.refresh(solution)
    return solution


@router.delete("/{solution_id}")
def solution_delete(solution_id: int, db: Session = Depends(get_db)):
    solution = db.get(Solution, solution_id)
    if not solution:
        raise HTTPException(status_code=404, detail="Solution not found")
    has_orders = db.exec(
        select(SolutionRegistration.id).where(SolutionRegistration.solution_id == solution_id)
    ).first()
    if has_orders is not None:
        raise HTTPException(status_code=400, detail="Solution has registrations; deactivate it instead")
    db.delete(solution)
    db.commit()
    log.info("Solution deleted: id=%s", solution_id)
    return {"ok": True}
