"""
Audit logging for processing outcomes.

PRIVACY: Never log subjects, body text, sender addresses, or todo titles.
Only log ids, categories, counts, scores, and timings. Fields named after
email content are dropped before the record is emitted.

Usage:
    from mailtriage.logging.audit import audit
    audit.info("email.classified", email_id="msg-1", category="work")
"""

import logging
from typing import Any

# Field names that would carry email content. Never emitted.
CONTENT_FIELDS = frozenset({
    "subject", "body", "sender", "text", "title", "description", "context",
})


class AuditLogger:
    """Thin wrapper around logging that enforces structured action fields."""

    def __init__(self):
        self._logger = logging.getLogger("audit")

    def info(self, action: str, **fields: Any) -> None:
        self._emit(logging.INFO, action, fields)

    def warning(self, action: str, **fields: Any) -> None:
        self._emit(logging.WARNING, action, fields)

    def error(self, action: str, **fields: Any) -> None:
        self._emit(logging.ERROR, action, fields)

    def _emit(self, level: int, action: str, fields: dict[str, Any]) -> None:
        safe = {k: v for k, v in fields.items() if k not in CONTENT_FIELDS}
        dropped = sorted(set(fields) - set(safe))
        if dropped:
            safe["dropped_fields"] = dropped
        self._logger.log(level, action, extra={"action": action, **safe})


audit = AuditLogger()
