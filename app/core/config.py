from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings

# .env lives at the project root: app/core/config.py -> app/core -> app -> root
_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _ROOT / ".env"

PAYSTACK_SECRET_PREFIX = "sk_"


class Settings(BaseSettings):
    secret_key: str = "change-me-in-production"
    database_url: str = "sqlite:///./credulen.db"
    # Comma separated origin list; production: https://credulen.com
    cors_origins: str = "*"
    rate_limit_per_minute: int = 60
    # Separate budget for payment initiation (each call opens a gateway transaction)
    rate_limit_payment_per_minute: int = 20
    admin_secret: str = ""  # X-Admin-Secret for /admin/* routes
    environment: str = "development"
    log_level: str = "INFO"
    # Paystack: amounts are sent in kobo, stored in Naira
    paystack_secret_key: str = ""
    paystack_base_url: str = "https://api.paystack.co"
    paystack_callback_url: str = ""  # Used when the client sends no callback_url
    paystack_timeout_seconds: float = 20.0
    currency_symbol: str = "₦"
    # Verified references are kept this long so retried verify calls short-circuit
    processed_payment_ttl_minutes: int = 30
    # Confirmation email: bounded retry
    email_retry_attempts: int = 3
    email_retry_delay_seconds: float = 2.0
    # SMTP
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from: str = "noreply@credulen.com"
    smtp_from_name: str = "Credulen"
    smtp_use_tls: bool = True
    frontend_url: str = "http://127.0.0.1:5173"
    support_email: str = "support@credulen.com"
    # Event reminders: one run at startup, then every N minutes
    reminders_enabled: bool = True
    reminder_interval_minutes: int = 10
    reminder_horizon_hours: int = 25

    model_config = {
        "env_file": _ENV_FILE if _ENV_FILE.is_file() else ".env",
        "extra": "ignore",
    }

    @field_validator("paystack_secret_key", "admin_secret", mode="before")
    @classmethod
    def strip_secret(cls, v: str | None) -> str:
        """Trailing whitespace from copy/paste breaks bearer auth."""
        return (v or "").strip()


settings = Settings()


def is_paystack_configured() -> bool:
    """Is a usable Paystack secret key set?"""
    key = settings.paystack_secret_key
    return bool(key) and key.startswith(PAYSTACK_SECRET_PREFIX)
