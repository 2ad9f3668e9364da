"""Webinars: details by slug and the Paystack checkout for a seat."""
from fastapi import APIRouter, Depends, Query, Request
from sqlmodel import Session

from app.api.deps import get_webinar_payment_service
from app.core.config import settings
from app.core.database import get_db
from app.core.rate_limit import client_ip, limiter
from app.schemas import (
    PaymentInitiateResponse,
    WebinarOut,
    WebinarPaymentOut,
    WebinarPaymentRequest,
    WebinarVerifyResponse,
)
from app.services.webinars import WebinarPaymentService, webinar_by_slug

router = APIRouter(prefix="/api/webinars", tags=["webinars"])
_PAYMENT_RATE_LIMIT = f"{settings.rate_limit_payment_per_minute}/minute"


@router.get("/{slug}", response_model=WebinarOut)
def get_webinar(slug: str, db: Session = Depends(get_db)):
    return webinar_by_slug(db, slug)


@router.post("/payments/initiate", response_model=PaymentInitiateResponse | WebinarVerifyResponse)
@limiter.limit(_PAYMENT_RATE_LIMIT)
def initiate_webinar_payment(
    request: Request,
    body: WebinarPaymentRequest,
    service: WebinarPaymentService = Depends(get_webinar_payment_service),
):
    checkout = service.initiate(body, ip=client_ip(request))
    if checkout.free:
        return WebinarVerifyResponse(
            message="Registration successful",
            data=WebinarPaymentOut.model_validate(checkout.payment),
        )
    return PaymentInitiateResponse(authorization_url=checkout.authorization_url, reference=checkout.reference)


@router.get("/payments/verify", response_model=WebinarVerifyResponse)
def verify_webinar_payment(
    request: Request,
    reference: str = Query(..., min_length=1, max_length=200),
    service: WebinarPaymentService = Depends(get_webinar_payment_service),
):
    result = service.verify(reference, ip=client_ip(request))
    message = "Payment already processed" if result.already_processed else "Payment verified successfully"
    return WebinarVerifyResponse(message=message, data=WebinarPaymentOut.model_validate(result.payment))
