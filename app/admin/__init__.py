"""Admin JSON API under /admin; every route requires X-Admin-Secret."""
from fastapi import APIRouter, Depends

from app.admin.deps import require_admin
from app.admin.routers import events, notifications, payments, reminders, solutions, vouchers, webinars

admin_router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])

admin_router.include_router(vouchers.router, prefix="/vouchers", tags=["admin-vouchers"])
admin_router.include_router(solutions.router, prefix="/solutions", tags=["admin-solutions"])
admin_router.include_router(events.router, prefix="/events", tags=["admin-events"])
admin_router.include_router(payments.router, prefix="/payments", tags=["admin-payments"])
admin_router.include_router(notifications.router, prefix="/notifications", tags=["admin-notifications"])
admin_router.include_router(reminders.router, prefix="/reminders", tags=["admin-reminders"])
admin_router.include_router(webinars.router, prefix="/webinars", tags=["admin-webinars"])
