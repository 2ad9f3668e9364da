from .auth import Token, UserResponse
from .event import EventCreate, EventOut, EventRegistrationCreate, EventRegistrationOut
from .notification import MarkAllReadResponse, NotificationOut
from .payment import (
    DiscountPreviewRequest,
    DiscountPreviewResponse,
    FreeRegistrationResponse,
    PaymentInitiateRequest,
    PaymentInitiateResponse,
    PaymentListResponse,
    PaymentVerifyResponse,
    RegistrationOut,
)
from .solution import SolutionCreate, SolutionOut, SolutionUpdate
from .voucher import VoucherCreate, VoucherOut, VoucherUpdate
from .webinar import WebinarCreate, WebinarOut, WebinarPaymentOut, WebinarPaymentRequest, WebinarVerifyResponse

__all__ = [
    "DiscountPreviewRequest",
    "DiscountPreviewResponse",
    "EventCreate",
    "EventOut",
    "EventRegistrationCreate",
    "EventRegistrationOut",
    "FreeRegistrationResponse",
    "MarkAllReadResponse",
    "NotificationOut",
    "PaymentInitiateRequest",
    "PaymentInitiateResponse",
    "PaymentListResponse",
    "PaymentVerifyResponse",
    "RegistrationOut",
    "SolutionCreate",
    "SolutionOut",
    "SolutionUpdate",
    "Token",
    "UserResponse",
    "VoucherCreate",
    "VoucherOut",
    "VoucherUpdate",
    "WebinarCreate",
    "WebinarOut",
    "WebinarPaymentOut",
    "WebinarPaymentRequest",
    "WebinarVerifyResponse",
]
