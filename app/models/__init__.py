from .audit import AuditLog
from .error_log import ErrorLog
from .event import Event, EventRegistration
from .notification import Notification, NotificationRecipient
from .processed_payment import ProcessedPayment
from .registration import SolutionRegistration
from .solution import Solution
from .user import User
from .voucher import Voucher
from .webinar import Webinar, WebinarPayment

__all__ = [
    "AuditLog",
    "ErrorLog",
    "Event",
    "EventRegistration",
    "Notification",
    "NotificationRecipient",
    "ProcessedPayment",
    "SolutionRegistration",
    "Solution",
    "User",
    "Voucher",
    "Webinar",
    "WebinarPayment",
]
