"""Email delivery: payment confirmation, event registration and event reminders (SMTP)."""
import logging
import smtplib
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape

from app.core.clock import utcnow
from app.core.config import settings

log = logging.getLogger("credulen.email")

# (to, subject, html_body) -> delivered?
Mailer = Callable[[str, str, str], bool]

BRAND_BLUE = "#0F0B78"
BRAND_LIME = "#E2FF02"
LOGO_URL = "https://res.cloudinary.com/dxmiz9idd/image/upload/v1730724855/CredulenLogo_n8wexs.png"


@dataclass(frozen=True)
class DeliveryResult:
    sent: bool
    attempts: int
    error: str | None = None


def _money(amount: float | None) -> str | None:
    if amount is None:
        return None
    return f"{settings.currency_symbol}{amount:,.2f}"


def _rows(fields: list[tuple[str, object | None]]) -> str:
    """Table rows for the non-empty fields only."""
    out = []
    for label, value in fields:
        if value in (None, ""):
            continue
        out.append(
            '<tr><td style="padding:10px 0;color:#4B5563;font-size:14px;font-weight:600;width:40%;">'
            f"{escape(label)}:</td>"
            f'<td style="padding:10px 0;color:#1F2937;font-size:14px;">{escape(str(value))}</td></tr>'
        )
    return "".join(out)


def _layout(title: str, heading: str, intro: str, details_html: str, closing: str) -> str:
    support = escape(settings.support_email)
    site = escape((settings.frontend_url or "").rstrip("/") or "https://credulen.com")
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1.0" />
  <title>{escape(title)}</title>
</head>
<body style="margin:0;padding:0;background-color:#F3F4F6;font-family:'Inter',Arial,sans-serif;">
  <table role="presentation" cellpadding="0" cellspacing="0" width="100%" style="max-width:600px;margin:20px auto;background:#ffffff;border-radius:12px;overflow:hidden;">
    <tr>
      <td style="background-color:{BRAND_BLUE};padding:24px;text-align:center;">
        <img src="{LOGO_URL}" alt="Credulen" style="max-width:180px;height:auto;" />
      </td>
    </tr>
    <tr>
      <td style="padding:40px 24px 16px;text-align:center;">
        <h1 style="color:{BRAND_BLUE};font-size:26px;font-weight:700;margin:0 0 16px;">{escape(heading)}</h1>
        <p style="color:#1A1A5C;font-size:16px;line-height:1.5;margin:0;">{intro}</p>
      </td>
    </tr>
    <tr>
      <td style="padding:0 24px 32px;">
        <div style="background-color:{BRAND_LIME};border-radius:8px;padding:24px;">
          <table cellpadding="0" cellspacing="0" width="100%">{details_html}</table>
        </div>
      </td>
    </tr>
    <tr>
      <td style="padding:0 24px 32px;text-align:center;">
        <p style="color:#1A1A5C;font-size:15px;line-height:1.5;margin:0 0 24px;">{closing}</p>
        <a href="{site}" style="display:inline-block;padding:12px 24px;background-color:{BRAND_BLUE};color:#ffffff;border-radius:6px;text-decoration:none;">Visit Our Website</a>
      </td>
    </tr>
    <tr>
      <td style="padding:16px 24px;border-top:1px solid #E5E7EB;text-align:center;color:#6B7280;font-size:13px;">
        Need assistance? Contact <a href="mailto:{support}" style="color:#F4A261;">{support}</a><br />
        &copy; {utcnow().year} Credulen. All rights reserved.
      </td>
    </tr>
  </table>
</body>
</html>"""


def build_payment_success_email_html(
    first_name: str,
    last_name: str,
    email: str,
    phone_number: str | None,
    selected_solution: str,
    amount: float,
    payment_reference: str | None,
) -> tuple[str, str]:
    """(subject, html_body). Zero amount renders as a free registration."""
    name = f"{first_name} {last_name}".strip()
    free = amount <= 0
    subject = f"Registration Confirmed: {selected_solution}" if free else f"Payment Confirmed: {selected_solution}"
    heading = "Registration Confirmed" if free else "Payment Successful"
    intro = (
        f"Dear {escape(name)},<br>Thank you for registering for <strong>{escape(selected_solution)}</strong>."
        if free
        else f"Dear {escape(name)},<br>Thank you for your payment! Your place in "
        f"<strong>{escape(selected_solution)}</strong> is confirmed."
    )
    details = _rows(
        [
            ("Name", name),
            ("Email", email),
            ("Phone", phone_number),
            ("Selected Solution", selected_solution),
            ("Amount Paid", None if free else _money(amount)),
            ("Payment Reference", payment_reference),
        ]
    )
    closing = "Our team will reach out within the next 24-48 hours with further details and next steps."
    return subject, _layout(subject, heading, intro, details, closing)


def build_webinar_payment_email_html(
    first_name: str,
    last_name: str,
    email: str,
    webinar_title: str,
    amount: float,
    transaction_date: datetime | None,
    payment_reference: str | None,
) -> tuple[str, str]:
    name = f"{first_name} {last_name}".strip()
    subject = "Webinar Payment Confirmation"
    intro = (
        f"Dear {escape(name)},<br>Thank you for your payment! Your registration for "
        f"<strong>{escape(webinar_title)}</strong> is confirmed."
    )
    details = _rows(
        [
            ("Name", name),
            ("Email", email),
            ("Webinar", webinar_title),
            ("Amount", _money(amount)),
            ("Transaction Date", transaction_date.strftime("%d %B %Y %H:%M UTC") if transaction_date else None),
            ("Payment Reference", payment_reference or "Pending"),
        ]
    )
    closing = "Our team will reach out within the next 24-48 hours with the joining details."
    return subject, _layout(subject, subject, intro, details, closing)


def build_event_registration_email_html(full_name: str, event_title: str, event_date: datetime | None, venue: str | None) -> tuple[str, str]:
    subject = f"Registration Confirmed: {event_title}"
    intro = f"Dear {escape(full_name)},<br>You are registered for <strong>{escape(event_title)}</strong>."
    details = _rows(
        [
            ("Event", event_title),
            ("Date", event_date.strftime("%A, %d %B %Y %H:%M UTC") if event_date else None),
            ("Venue", venue),
        ]
    )
    closing = "We will send you a reminder 24 hours and 1 hour before the event starts."
    return subject, _layout(subject, "Registration Confirmed", intro, details, closing)


_REMINDER_COPY = {
    "24h": ("Event Reminder - 24 Hours to Go!", "is happening tomorrow"),
    "1h": ("Event Starting in 1 Hour!", "starts in about an hour"),
}


def build_reminder_email_html(
    window: str,
    event_title: str,
    event_date: datetime | None,
    venue: str | None,
    meeting_link: str | None,
    meeting_id: str | None,
    passcode: str | None,
) -> tuple[str, str]:
    heading, when = _REMINDER_COPY.get(window, _REMINDER_COPY["24h"])
    subject = f"Reminder: {event_title} - Starting Soon!"
    intro = f"<strong>{escape(event_title)}</strong> {when}. We look forward to seeing you."
    details = _rows(
        [
            ("Event", event_title),
            ("Date", event_date.strftime("%A, %d %B %Y %H:%M UTC") if event_date else None),
            ("Venue", venue),
            ("Meeting Link", meeting_link),
            ("Meeting ID", meeting_id),
            ("Passcode", passcode),
        ]
    )
    closing = "Please join a few minutes early so we can start on time."
    return subject, _layout(heading, heading, intro, details, closing)


def is_mail_configured() -> bool:
    """Are SMTP settings filled in?"""
    host = getattr(settings, "smtp_host", None) or ""
    return bool(host.strip())


def send_email(to: str, subject: str, html_body: str) -> bool:
    """Sends a single HTML email. True on success."""
    if not is_mail_configured():
        log.warning("SMTP not configured; email not sent to %s", to)
        return False
    host = (settings.smtp_host or "").strip()
    port = int(getattr(settings, "smtp_port", 587) or 587)
    user = (getattr(settings, "smtp_user", None) or "").strip()
    password = (getattr(settings, "smtp_password", None) or "").strip()
    from_addr = (getattr(settings, "smtp_from", None) or "noreply@credulen.com").strip()
    from_name = (getattr(settings, "smtp_from_name", None) or "Credulen").strip()
    use_tls = getattr(settings, "smtp_use_tls", True)
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = f"{from_name} <{from_addr}>" if from_name else from_addr
    msg["To"] = to
    msg.attach(MIMEText(html_body, "html", "utf-8"))
    try:
        with smtplib.SMTP(host, port, timeout=15) as smtp:
            if use_tls:
                smtp.starttls()
            if user and password:
                smtp.login(user, password)
            smtp.sendmail(from_addr, [to], msg.as_string())
        log.info("Email sent to %s subject=%s", to, subject[:50])
        return True
    except Exception as e:
        log.exception("Failed to send email to %s: %s", to, e)
        return False


def send_with_retry(
    send: Mailer,
    to: str,
    subject: str,
    html_body: str,
    attempts: int | None = None,
    delay: float | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> DeliveryResult:
    """
    Up to `attempts` tries with a fixed `delay` between them. A False return or an
    exception from `send` is a failed attempt. Never raises.
    """
    attempts = max(1, attempts if attempts is not None else settings.email_retry_attempts)
    delay = settings.email_retry_delay_seconds if delay is None else delay
    last_error: str | None = None
    for attempt in range(1, attempts + 1):
        try:
            if send(to, subject, html_body):
                log.info("Email delivered to %s (attempt %s)", to, attempt)
                return DeliveryResult(sent=True, attempts=attempt)
            last_error = "mailer reported failure"
        except Exception as e:
            last_error = str(e)[:200]
        log.error("Failed to send email to %s (attempt %s/%s): %s", to, attempt, attempts, last_error)
        if attempt < attempts and delay > 0:
            sleep(delay)
    log.error("Max retries reached for email to %s", to)
    return DeliveryResult(sent=False, attempts=attempts, error=last_error)


def get_mailer() -> Mailer:
    """FastAPI dependency; tests override it with a recording mailer."""
    return send_email
