"""Event reminder scheduler: status and manual run."""
from fastapi import APIRouter, Depends, HTTPException
from starlette.concurrency import run_in_threadpool

from app.admin.deps import get_reminder_scheduler
from app.services.reminders import ReminderScheduler

router = APIRouter()


@router.get("/status")
def reminders_status(scheduler: ReminderScheduler = Depends(get_reminder_scheduler)):
    return scheduler.status()


@router.post("/run")
async def reminders_run(scheduler: ReminderScheduler = Depends(get_reminder_scheduler)):
    """Runs one scan now, outside the periodic schedule."""
    report = await run_in_threadpool(scheduler.run_once)
    if report is None:
        raise HTTPException(status_code=500, detail="Reminder scan failed; see server logs")
    return report.as_dict()
