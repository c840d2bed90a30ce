"""Due-date urgency classification."""

import enum
import math
from datetime import date, datetime
from typing import Optional, Union

CRITICAL_THRESHOLD_DAYS = 1
SOON_THRESHOLD_DAYS = 5


class Urgency(str, enum.Enum):
    """Urgency band of a payment, derived from days until due."""
    OK = "ok"
    WARN = "warn"
    CRIT = "crit"


def parse_due_date(value: Optional[str]) -> Optional[date]:
    """Parse an ISO date or datetime string into a calendar date.

    Accepts ``YYYY-MM-DD``, ISO datetimes with ``Z`` or an offset, and the
    ``YYYY-MM-DD HH:MM:SS.sssZ`` form. The date is taken as written, no
    timezone conversion is applied.

    Returns:
        The calendar date, or None if the value cannot be parsed.
    """
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def days_until(date_iso: Optional[str], today: Optional[date] = None) -> Union[int, float]:
    """Whole days from ``today`` to the due date.

    Returns:
        Day difference (negative when overdue), or ``math.inf`` for an
        unparseable date so it sorts last and is never critical.
    """
    due = parse_due_date(date_iso)
    if due is None:
        return math.inf
    if today is None:
        today = date.today()
    elif isinstance(today, datetime):
        today = today.date()
    return (due - today).days


def classify(days: Union[int, float]) -> Urgency:
    """Map days-until-due to an urgency band. Boundaries fall in the stricter band."""
    if days <= CRITICAL_THRESHOLD_DAYS:
        return Urgency.CRIT
    if days <= SOON_THRESHOLD_DAYS:
        return Urgency.WARN
    return Urgency.OK
