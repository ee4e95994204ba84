from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Any, Optional, Tuple

from ..core.exceptions import ValidationError


def parse_when(value: Any) -> Optional[datetime]:
    """Parse a request date: either YYYY-MM-DD or a full ISO timestamp."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    text = str(value).strip().replace("Z", "+00:00")
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"Invalid date: {value}")
    if parsed.tzinfo is not None:
        # Offsets are converted to server-local wall time before the day is taken.
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def day_window(day: date) -> Tuple[datetime, datetime]:
    """[00:00, 23:59:59.999] of the given calendar day."""
    start = datetime.combine(day, time.min)
    end = start + timedelta(days=1) - timedelta(milliseconds=1)
    return start, end


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def range_end(value: Any) -> Optional[datetime]:
    """Upper bound of a date filter; a bare YYYY-MM-DD covers that whole day."""
    parsed = parse_when(value)
    if parsed is None:
        return None
    if isinstance(value, str) and len(value.strip()) == 10:
        return day_window(parsed.date())[1]
    return parsed
