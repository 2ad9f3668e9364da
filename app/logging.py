"""
Logging configuration.
One stdout handler for uvicorn and the credulen.* loggers; LOG_LEVEL picks the level.
"""
import logging
import sys

APP_LOGGERS = (
    "credulen",
    "credulen.payments",
    "credulen.paystack",
    "credulen.email",
    "credulen.notifications",
    "credulen.reminders",
)


def setup_logging(
    level: int | str = logging.INFO,
    format_string: str | None = None,
) -> None:
    if isinstance(level, str):
        level = logging.getLevelName(level.strip().upper())
        if not isinstance(level, int):
            level = logging.INFO
    if format_string is None:
        format_string = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    logging.basicConfig(
        level=level,
        format=format_string,
        stream=sys.stdout,
        force=True,
    )
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access", *APP_LOGGERS):
        logging.getLogger(name).setLevel(level)
    # SQL echo only when explicitly debugging
    logging.getLogger("sqlalchemy.engine").setLevel(logging.DEBUG if level <= logging.DEBUG else logging.WARNING)
