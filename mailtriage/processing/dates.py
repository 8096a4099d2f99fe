"""
Due-date extraction for todo candidates.

Recognizes a small set of English phrasings ("by 3/15/2025", "due 3/15/25",
"by Friday", "by tomorrow", "by next week") and resolves relative phrases
against a caller-supplied "today" so results are reproducible in tests.
"""

import logging
import re
from datetime import date, datetime, timedelta
from typing import Optional

logger = logging.getLogger(__name__)

_NUMERIC_DATE = r"(\d{1,2}/\d{1,2}/\d{2,4})"
_WEEKDAY = r"(monday|tuesday|wednesday|thursday|friday|saturday|sunday)"

# Checked in order; the first pattern that matches decides the due date.
DUE_DATE_PATTERNS = (
    re.compile(rf"\bby\s+{_NUMERIC_DATE}", re.IGNORECASE),
    re.compile(rf"\bby\s+{_WEEKDAY}", re.IGNORECASE),
    re.compile(rf"\bdue\s+{_NUMERIC_DATE}", re.IGNORECASE),
    re.compile(rf"\bdeadline\s+{_NUMERIC_DATE}", re.IGNORECASE),
    re.compile(rf"\bbefore\s+{_NUMERIC_DATE}", re.IGNORECASE),
    re.compile(r"\bby\s+(today|tomorrow|this\s+week|next\s+week)", re.IGNORECASE),
)

# Sunday-first, matching the week layout used for "this week".
WEEKDAY_NAMES = ("sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday")

NUMERIC_DATE_FORMATS = ("%m/%d/%Y", "%m/%d/%y")


def _sunday_index(day: date) -> int:
    """Day of week with Sunday = 0 ... Saturday = 6."""
    return day.isoweekday() % 7


def parse_date_string(text: str, today: date) -> Optional[date]:
    """
    Resolve a matched date phrase to a calendar date.

    Relative phrases:
        today      → today
        tomorrow   → today + 1
        this week  → the coming Sunday (a full week ahead when today is Sunday)
        next week  → today + 7
        <weekday>  → the next occurrence strictly after today
    Anything else is parsed as M/D/YYYY or M/D/YY. Returns None when nothing fits.
    """
    phrase = " ".join(text.lower().split())

    if "today" in phrase:
        return today
    if "tomorrow" in phrase:
        return today + timedelta(days=1)
    if "this week" in phrase:
        return today + timedelta(days=7 - _sunday_index(today))
    if "next week" in phrase:
        return today + timedelta(days=7)

    for index, name in enumerate(WEEKDAY_NAMES):
        if name in phrase:
            delta = index - _sunday_index(today)
            if delta <= 0:
                delta += 7
            return today + timedelta(days=delta)

    for fmt in NUMERIC_DATE_FORMATS:
        try:
            return datetime.strptime(phrase, fmt).date()
        except ValueError:
            continue

    logger.debug("due_date.unparsed", extra={"action": "due_date.unparsed"})
    return None


def extract_due_date(text: str, today: date) -> Optional[date]:
    """Find the first due-date phrase in text and resolve it, or None."""
    for pattern in DUE_DATE_PATTERNS:
        match = pattern.search(text)
        if match:
            return parse_date_string(match.group(1), today)
    return None
