"""Checkout: voucher preview, payment initiation (Paystack or free) and verification."""
from fastapi import APIRouter, Depends, Query, Request

from app.api.deps import get_payment_service
from app.core.config import settings
from app.core.rate_limit import client_ip, limiter
from app.schemas import (
    DiscountPreviewRequest,
    DiscountPreviewResponse,
    FreeRegistrationResponse,
    PaymentInitiateRequest,
    PaymentInitiateResponse,
    PaymentVerifyResponse,
    RegistrationOut,
)
from app.services.payments import PaymentService

router = APIRouter(prefix="/api/payments", tags=["payments"])
_PAYMENT_RATE_LIMIT = f"{settings.rate_limit_payment_per_minute}/minute"


@router.post("/discounted-amount", response_model=DiscountPreviewResponse)
def discounted_amount(
    body: DiscountPreviewRequest,
    service: PaymentService = Depends(get_payment_service),
):
    """Price after the voucher; 400 with the rejection reason when the voucher does not apply."""
    quote = service.preview(body.solution_id, body.email, body.voucher_code)
    return DiscountPreviewResponse(
        original_amount=quote.base_amount,
        discounted_amount=quote.final_amount,
        discount=round(quote.base_amount - quote.final_amount, 2),
        voucher_code=quote.voucher_code,
    )


@router.post("/initiate", response_model=PaymentInitiateResponse | FreeRegistrationResponse)
@limiter.limit(_PAYMENT_RATE_LIMIT)
def initiate_payment(
    request: Request,
    body: PaymentInitiateRequest,
    service: PaymentService = Depends(get_payment_service),
):
    result = service.initiate(body, ip=client_ip(request))
    if result.free:
        return FreeRegistrationResponse(data=RegistrationOut.model_validate(result.registration))
    return PaymentInitiateResponse(authorization_url=result.authorization_url, reference=result.reference)


@router.get("/verify", response_model=PaymentVerifyResponse)
def verify_payment(
    request: Request,
    reference: str = Query(..., min_length=1, max_length=200),
    service: PaymentService = Depends(get_payment_service),
):
    result = service.verify(reference, ip=client_ip(request))
    message = "Payment already processed" if result.already_processed else "Payment verified successfully"
    return PaymentVerifyResponse(message=message, data=result.payload())
