from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_
from sqlmodel import Session, func, select

from app.core.database import get_db
from app.models import Solution
from app.schemas import SolutionOut

router = APIRouter(prefix="/api/solutions", tags=["solutions"])


@router.get("")
def list_solutions(
    db: Session = Depends(get_db),
    page: int = Query(1, ge=1),
    page_size: int = Query(9, ge=1, le=50, alias="pageSize"),
    category: str | None = None,
    search: str | None = Query(None, alias="searchTerm", max_length=100),
):
    """Active solutions, newest first: {solutions, pagination}."""
    stmt = select(Solution).where(Solution.is_active == True)  # noqa: E712
    count_stmt = select(func.count(Solution.id)).where(Solution.is_active == True)  # noqa: E712
    if category:
        stmt = stmt.where(Solution.category == category)
        count_stmt = count_stmt.where(Solution.category == category)
    if search and search.strip():
        term = f"%{search.strip()}%"
        cond = or_(Solution.title.ilike(term), Solution.content.ilike(term))
        stmt = stmt.where(cond)
        count_stmt = count_stmt.where(cond)
    total = db.exec(count_stmt).one() or 0
    total_pages = max(1, -(-total // page_size))
    page = min(page, total_pages)
    rows = db.exec(
        stmt.order_by(Solution.updated_at.desc(), Solution.id.desc()).offset((page - 1) * page_size).limit(page_size)
    ).all()
    return {
        "solutions": [SolutionOut.model_validate(s) for s in rows],
        "pagination": {
            "currentPage": page,
            "pageSize": page_size,
            "totalPages": total_pages,
            "totalCount": total,
            "hasNextPage": page < total_pages,
            "hasPrevPage": page > 1,
        },
    }


@router.get("/{slug}", response_model=SolutionOut)
def get_solution(slug: str, db: Session = Depends(get_db)):
    solution = db.exec(select(Solution).where(Solution.slug == slug.strip().lower())).first()
    if not solution or not solution.is_active:
        raise HTTPException(status_code=404, detail="Solution not found")
    return solution
