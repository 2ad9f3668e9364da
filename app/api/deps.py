from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from app.core.database import get_db
from app.core.security import decode_access_token
from app.models import User
from app.services.email_sender import Mailer, get_mailer
from app.services.payments import PaymentService
from app.services.paystack import PaystackClient, get_gateway
from app.services.webinars import WebinarPaymentService

security = HTTPBearer(auto_error=False)


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> int:
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    payload = decode_access_token(credentials.credentials)
    if not payload or "sub" not in payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    return int(payload["sub"])


def get_current_user(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> User:
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def get_payment_service(
    db: Session = Depends(get_db),
    gateway: PaystackClient = Depends(get_gateway),
    mailer: Mailer = Depends(get_mailer),
) -> PaymentService:
    return PaymentService(db, gateway, mailer)


def get_webinar_payment_service(
    db: Session = Depends(get_db),
    gateway: PaystackClient = Depends(get_gateway),
    mailer: Mailer = Depends(get_mailer),
) -> WebinarPaymentService:
    return WebinarPaymentService(db, gateway, mailer)
