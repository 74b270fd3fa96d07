"""
Process-wide logging setup.

Everything logged under the "promptvault" logger goes to a file rotated at
midnight (LOG_DIR/app.log, 7 days kept) and to the console. A redaction
filter on both handlers masks anything shaped like a provider key or a
bearer token.
"""

import datetime
import logging
import re
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .settings import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
BACKUP_DAYS = 7
REDACTED_SECRET = "[redacted]"

_SECRET_PATTERNS = (
    re.compile(r"\bsk-[A-Za-z0-9_\-]{8,}"),
    re.compile(r"\bAIza[0-9A-Za-z_\-]{10,}"),
    re.compile(r"\bgsk_[A-Za-z0-9]{8,}"),
    re.compile(r"(?i)\bbearer\s+[A-Za-z0-9._\-]{8,}"),
)

_configured = False


def redact_secrets(text: str) -> str:
    for pattern in _SECRET_PATTERNS:
        text = pattern.sub(REDACTED_SECRET, text)
    return text


class SecretRedactionFilter(logging.Filter):
    """Rewrites the formatted message with key-shaped substrings masked."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_secrets(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


class LocalTimezoneFormatter(logging.Formatter):
    """
    ISO-8601 timestamps in LOG_TIMEZONE; an unknown or empty name falls
    back to the machine's local zone.
    """

    def __init__(self, fmt: str = LOG_FORMAT, *, timezone_name: str | None = None):
        super().__init__(fmt)
        self._tz = self._resolve(timezone_name)

    @staticmethod
    def _resolve(timezone_name: str | None) -> datetime.tzinfo:
        if timezone_name:
            try:
                return ZoneInfo(timezone_name)
            except ZoneInfoNotFoundError:
                logging.getLogger("promptvault").warning(
                    "Unknown LOG_TIMEZONE %r, using local time", timezone_name
                )
        return datetime.datetime.now().astimezone().tzinfo or datetime.timezone.utc

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        stamp = datetime.datetime.fromtimestamp(record.created, tz=self._tz)
        return stamp.strftime(datefmt) if datefmt else stamp.isoformat(timespec="milliseconds")


def _file_handler(log_dir: Path) -> logging.Handler:
    log_dir.mkdir(parents=True, exist_ok=True)
    return TimedRotatingFileHandler(
        log_dir / "app.log",
        when="midnight",
        backupCount=BACKUP_DAYS,
        encoding="utf-8",
    )


def setup_logging(*, log_dir: str | Path | None = None, console: bool = True) -> None:
    """
    Configure the "promptvault" logger once per process; later calls are
    no-ops.
    """
    global _configured
    if _configured:
        return

    level = getattr(logging, str(settings.log_level).upper(), logging.INFO)
    formatter = LocalTimezoneFormatter(timezone_name=settings.log_timezone)
    redaction = SecretRedactionFilter()

    handlers = [_file_handler(Path(log_dir or settings.log_dir))]
    if console:
        handlers.append(logging.StreamHandler())

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(redaction)
        logger.addHandler(handler)

    logger.setLevel(level)
    logger.propagate = False
    _configured = True


logger = logging.getLogger("promptvault")
