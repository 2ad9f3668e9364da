"""
Event reminder emails: 24 hours and 1 hour before an event starts.

A scan runs once at startup and then every `interval` minutes. Each (email,
event, window, day) is sent at most once; the dedup keys live in a
ReminderStore so another backend can replace the in-memory one.
"""
import asyncio
import contextlib
import logging
import threading
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta
from typing import Protocol

from sqlmodel import Session, select

from app.core.clock import utcnow
from app.core.config import settings
from app.models import Event, EventRegistration
from app.services.email_sender import Mailer, build_reminder_email_html

log = logging.getLogger("credulen.reminders")

# (label, lower bound exclusive, upper bound inclusive) in hours until start
WINDOWS: tuple[tuple[str, float, float], ...] = (
    ("24h", 23.5, 24.5),
    ("1h", 0.5, 1.5),
)
KEY_RETENTION = timedelta(hours=24)


@dataclass(frozen=True)
class ReminderKey:
    email: str
    event_id: int
    window: str
    day: date


class ReminderStore(Protocol):
    def has(self, key: ReminderKey) -> bool: ...

    def add(self, key: ReminderKey, sent_at: datetime) -> None: ...

    def prune(self, older_than: datetime) -> int: ...

    def snapshot(self) -> list[dict]: ...


class InMemoryReminderStore:
    """Process-local; lost on restart, which can repeat a reminder at most once per window."""

    def __init__(self) -> None:
        self._sent: dict[ReminderKey, datetime] = {}
        self._lock = threading.Lock()

    def has(self, key: ReminderKey) -> bool:
        with self._lock:
            return key in self._sent

    def add(self, key: ReminderKey, sent_at: datetime) -> None:
        with self._lock:
            self._sent[key] = sent_at

    def prune(self, older_than: datetime) -> int:
        with self._lock:
            stale = [k for k, sent_at in self._sent.items() if sent_at < older_than]
            for k in stale:
                del self._sent[k]
            return len(stale)

    def snapshot(self) -> list[dict]:
        with self._lock:
            items = sorted(self._sent.items(), key=lambda kv: kv[1])
        return [
            {**asdict(k), "day": k.day.isoformat(), "sent_at": sent_at.isoformat()}
            for k, sent_at in items
        ]


@dataclass
class ReminderScanReport:
    started_at: datetime
    events: int = 0
    sent: int = 0
    skipped: int = 0
    failed: int = 0
    pruned: int = 0
    errors: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        data = asdict(self)
        data["started_at"] = self.started_at.isoformat()
        return data


def window_for(hours_until: float) -> str | None:
    for label, low, high in WINDOWS:
        if low < hours_until <= high:
            return label
    return None


class ReminderScheduler:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        mailer: Mailer,
        store: ReminderStore | None = None,
        interval_minutes: float | None = None,
        horizon_hours: float | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.mailer = mailer
        self.store = store if store is not None else InMemoryReminderStore()
        self.interval = timedelta(minutes=interval_minutes or settings.reminder_interval_minutes)
        self.horizon = timedelta(hours=horizon_hours or settings.reminder_horizon_hours)
        self.clock = clock
        self.last_report: ReminderScanReport | None = None
        self._task: asyncio.Task | None = None
        # A manual run and the periodic tick must not check and send the same key at once
        self._scan_lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def scan(self, now: datetime | None = None) -> ReminderScanReport:
        with self._scan_lock:
            return self._scan(now or self.clock())

    def _scan(self, now: datetime) -> ReminderScanReport:
        report = ReminderScanReport(started_at=now)
        report.pruned = self.store.prune(now - KEY_RETENTION)
        with self.session_factory() as db:
            events = db.exec(
                select(Event).where(Event.date > now, Event.date < now + self.horizon).order_by(Event.date)
            ).all()
            report.events = len(events)
            for event in events:
                window = window_for((event.date - now).total_seconds() / 3600)
                if window is None:
                    continue
                registrations = db.exec(
                    select(EventRegistration).where(EventRegistration.slug == event.slug)
                ).all()
                log.info("Event %s (%s): %s registrations in %s window", event.id, event.slug, len(registrations), window)
                for registration in registrations:
                    self._remind(event, registration, window, now, report)
        self.last_report = report
        log.info(
            "Reminder scan: events=%s sent=%s skipped=%s failed=%s pruned=%s",
            report.events, report.sent, report.skipped, report.failed, report.pruned,
        )
        return report

    def _remind(
        self,
        event: Event,
        registration: EventRegistration,
        window: str,
        now: datetime,
        report: ReminderScanReport,
    ) -> None:
        key = ReminderKey(
            email=registration.email.strip().lower(),
            event_id=event.id,
            window=window,
            day=now.date(),
        )
        if self.store.has(key):
            report.skipped += 1
            return
        subject, html = build_reminder_email_html(
            window,
            event_title=event.title,
            event_date=event.date,
            venue=event.venue,
            meeting_link=event.meeting_link,
            meeting_id=event.meeting_id,
            passcode=event.passcode,
        )
        try:
            sent = self.mailer(registration.email, subject, html)
        except Exception as e:
            log.exception("Failed to send %s reminder to %s", window, registration.email)
            report.failed += 1
            report.errors.append(f"{registration.email}: {str(e)[:120]}")
            return
        if not sent:
            log.error("Failed to send %s reminder to %s", window, registration.email)
            report.failed += 1
            report.errors.append(f"{registration.email}: not delivered")
            return
        self.store.add(key, now)
        report.sent += 1

    def run_once(self, now: datetime | None = None) -> ReminderScanReport | None:
        """Scan, logging instead of raising; a bad tick must not stop the loop."""
        try:
            return self.scan(now)
        except Exception:
            log.exception("Error in reminder check")
            return None

    async def _loop(self) -> None:
        log.info("Reminder scheduler started: every %s", self.interval)
        while True:
            await asyncio.to_thread(self.run_once)
            await asyncio.sleep(self.interval.total_seconds())

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._loop(), name="event-reminders")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        log.info("Reminder scheduler stopped")

    def status(self) -> dict:
        return {
            "running": self.running,
            "interval_minutes": self.interval.total_seconds() / 60,
            "horizon_hours": self.horizon.total_seconds() / 3600,
            "tracked": self.store.snapshot(),
            "last_run": self.last_report.as_dict() if self.last_report else None,
        }
