from fastapi import APIRouter, Depends, HTTPException, Request
from sqlmodel import Session, select

from app.api.deps import get_current_user
from app.core.clock import utcnow
from app.core.config import settings
from app.core.database import get_db
from app.core.rate_limit import client_ip, limiter
from app.core.security import create_access_token, hash_password, verify_password
from app.models import User
from app.schemas import Token, UserResponse
from app.services.audit import record_audit

router = APIRouter(prefix="/auth", tags=["auth"])
_AUTH_RATE_LIMIT = f"{settings.rate_limit_per_minute}/minute"


def _user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id or 0,
        email=user.email,
        full_name=user.full_name or "",
        first_name=user.first_name,
        last_name=user.last_name,
        phone_number=user.phone_number,
        role=user.role,
        created_at=user.created_at,
    )


@router.post("/register", response_model=UserResponse)
@limiter.limit(_AUTH_RATE_LIMIT)
async def register(
    request: Request,
    db: Session = Depends(get_db),
):
    form = await request.form()
    email = (form.get("email") or "").strip().lower()
    password = form.get("password") or ""
    full_name = (form.get("full_name") or "").strip()
    phone = (form.get("phone_number") or "").strip()
    if not full_name:
        raise HTTPException(status_code=422, detail="Enter your full name")
    if not email or "@" not in email:
        raise HTTPException(status_code=422, detail="Enter a valid email address")
    if len(password) < 6:
        raise HTTPException(status_code=422, detail="Password must be at least 6 characters")

    user = db.exec(select(User).where(User.email == email)).first()
    if user and user.hashed_password:
        raise HTTPException(status_code=400, detail="Email is already registered")
    first_name, _, last_name = full_name.partition(" ")
    if user:
        # Buyer account created at payment verification: claim it by setting a password
        user.hashed_password = hash_password(password)
        user.full_name = full_name
        user.phone_number = phone or user.phone_number
    else:
        user = User(
            email=email,
            hashed_password=hash_password(password),
            full_name=full_name,
            first_name=first_name or None,
            last_name=last_name.strip() or None,
            phone_number=phone or None,
        )
    db.add(user)
    db.commit()
    db.refresh(user)
    record_audit(db, "register", user.id, client_ip(request))
    return _user_response(user)


@router.post("/login", response_model=Token)
@limiter.limit(_AUTH_RATE_LIMIT)
async def login(
    request: Request,
    db: Session = Depends(get_db),
):
    form = await request.form()
    email = (form.get("email") or "").strip().lower()
    password = form.get("password") or ""
    if not email:
        raise HTTPException(status_code=422, detail="Enter your email address")
    if not password:
        raise HTTPException(status_code=422, detail="Enter your password")
    user = db.exec(select(User).where(User.email == email)).first()
    if not user or not verify_password(password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Incorrect email or password")
    token = create_access_token({"sub": str(user.id)})
    user.last_login_at = utcnow()
    db.add(user)
    db.commit()
    record_audit(db, "login", user.id, client_ip(request))
    return Token(access_token=token)


@router.get("/me", response_model=UserResponse)
def me(user: User = Depends(get_current_user)):
    return _user_response(user)
