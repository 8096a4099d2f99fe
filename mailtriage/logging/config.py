"""
One JSON object per log line, tagged with the request and the email in flight.

The HTTP middleware sets request_id_var for each request. The processing
engine sets email_id_var around process_email, inside the batch worker thread
that runs it, so classifier and extractor log lines carry the email id
without passing it down. Email text itself is never logged; see audit.py.

Usage:
    from mailtriage.logging.config import setup_logging, email_id_var
    setup_logging(settings.log_level)

    token = email_id_var.set(email.id)
    try:
        logger.info("email.step", extra={"action": "email.step"})
    finally:
        email_id_var.reset(token)
"""

import logging
import json
import sys
from datetime import datetime, timezone
from contextvars import ContextVar


# Context variables: set by the HTTP middleware and the processing engine,
# automatically included in every log line emitted inside that context.
request_id_var: ContextVar[str] = ContextVar("request_id", default="-")
email_id_var: ContextVar[str] = ContextVar("email_id", default="-")


class JSONFormatter(logging.Formatter):
    """Formats every log record as a single JSON line."""

    INTERNAL_FIELDS = {
        "name", "msg", "args", "created", "relativeCreated", "exc_info",
        "exc_text", "stack_info", "lineno", "funcName", "pathname",
        "filename", "module", "thread", "threadName", "process",
        "processName", "msecs", "levelname", "levelno", "message",
        "taskName",
    }

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": request_id_var.get(),
            # An explicit email_id extra wins over the context.
            "email_id": getattr(record, "email_id", email_id_var.get()),
        }

        for key, val in record.__dict__.items():
            if key not in self.INTERNAL_FIELDS and key not in log:
                log[key] = val

        if record.exc_info and record.exc_info[0] is not None:
            log["exception_type"] = record.exc_info[0].__name__
            log["exception_message"] = str(record.exc_info[1])
            log["traceback"] = self.formatException(record.exc_info)

        return json.dumps(log, default=str)


def setup_logging(level: str = "info") -> None:
    """Route every logger through one JSON stdout handler. Safe to call again in tests."""
    root = logging.getLogger()
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
