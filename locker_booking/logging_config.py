from __future__ import annotations

import logging
import re

_EMAIL_RE = re.compile(r"\b[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}\b")
_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class EmailMaskingFilter(logging.Filter):
    """Replace e-mail addresses in log messages with ``[REDACTED_EMAIL]``."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = _EMAIL_RE.sub("[REDACTED_EMAIL]", message)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


def setup_logging(level: str | int = "INFO") -> None:
    root = logging.getLogger()
    root.setLevel(level)

    for handler in root.handlers:
        if getattr(handler, "_locker_booking", False):
            return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    handler.addFilter(EmailMaskingFilter())
    handler._locker_booking = True  # type: ignore[attr-defined]
    root.addHandler(handler)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
