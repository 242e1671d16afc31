"""
Date Utilities

Normalization and formatting of the semantic date fields on memories.

Every date field is stored twice: the raw timestamp and a short formatted
key. Range predicates compare the keys, so the key format must sort in
chronological order (YYYY-MM-DD, local time).
"""

import calendar
import re
from datetime import datetime, timedelta
from typing import Optional, Union

DATE_KEY_FORMAT = "%Y-%m-%d"
DISPLAY_FORMAT = "%m/%d/%y"

EPOCH = datetime(1970, 1, 1)

_MMDDYY_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2})$")

DateInput = Union[datetime, int, float, str, None]


def to_local(value: datetime) -> datetime:
    """Convert an aware datetime to naive local time; naive values pass through."""
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(value: datetime) -> datetime:
    return value.replace(hour=23, minute=59, second=59, microsecond=999000)


def add_months(value: datetime, months: int) -> datetime:
    """Shift by whole months, clamping the day to the target month's length."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def add_days(value: datetime, days: int) -> datetime:
    return value + timedelta(days=days)


def normalize_date(value: DateInput) -> Optional[datetime]:
    """
    Normalize assorted date inputs into a naive local datetime.

    Accepts datetime objects, epoch milliseconds, ISO-8601 strings and
    mm/dd/yy strings (assumed 20yy). Returns None for anything invalid
    rather than defaulting to the current time.
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        return to_local(value)

    if isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000.0)
        except (OverflowError, OSError, ValueError):
            return None

    if isinstance(value, str):
        text = value.strip()
        match = _MMDDYY_RE.match(text)
        if match:
            month, day, year = (int(g) for g in match.groups())
            try:
                return datetime(2000 + year, month, day)
            except ValueError:
                return None
        try:
            return to_local(datetime.fromisoformat(text.replace("Z", "+00:00")))
        except ValueError:
            return None

    return None


def format_date_key(value: DateInput) -> Optional[str]:
    """Format a date as the sortable key used by range predicates."""
    normalized = normalize_date(value)
    if normalized is None:
        return None
    return normalized.strftime(DATE_KEY_FORMAT)


def format_mmddyy(value: DateInput) -> Optional[str]:
    """Short display form (mm/dd/yy)."""
    normalized = normalize_date(value)
    if normalized is None:
        return None
    return normalized.strftime(DISPLAY_FORMAT)


def is_past_date(value: DateInput, now: Optional[datetime] = None) -> bool:
    normalized = normalize_date(value)
    if normalized is None:
        return False
    return normalized < (now or datetime.now())
