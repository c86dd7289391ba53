"""Day Bucketing - Canonical calendar days in UTC.

Every entry point resolves its optional date through ``resolve_date`` so that
all ledgers are bucketed under a single timezone policy.
"""

import calendar
from datetime import date, datetime, timedelta, timezone

from .errors import ValidationError


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_day(value: str, field: str = "date") -> date:
    """Parse a ``YYYY-MM-DD`` string.

    Raises:
        ValidationError: If the string is not a valid calendar day
    """
    try:
        if len(value) != 10:
            raise ValueError(value)
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError(field, "must be a date in YYYY-MM-DD format") from None


def resolve_date(
    value: str | date | None = None,
    now: datetime | None = None,
    field: str = "date",
) -> str:
    """Resolve an optional day to its canonical ``YYYY-MM-DD`` form.

    Args:
        value: A day string, a date, or None for the current UTC day
        now: Reference time used when value is None (defaults to utc_now())
        field: Field name reported on validation failure

    Returns:
        Canonical day string
    """
    if value is None or value == "":
        now = now or utc_now()
        return now.astimezone(timezone.utc).date().isoformat()
    if isinstance(value, datetime):
        return value.astimezone(timezone.utc).date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return parse_day(value, field).isoformat()


def iter_days(start: str, end: str) -> list[str]:
    """All canonical days from start to end inclusive (empty if end < start)."""
    current = parse_day(start)
    last = parse_day(end)
    days: list[str] = []
    while current <= last:
        days.append(current.isoformat())
        current += timedelta(days=1)
    return days


def week_window(anchor: str) -> tuple[str, str]:
    """The seven-day window ending at anchor, inclusive."""
    end = parse_day(anchor)
    start = end - timedelta(days=6)
    return start.isoformat(), end.isoformat()


def month_bounds(year: int, month: int) -> tuple[str, str]:
    """First and last canonical day of a calendar month.

    Raises:
        ValidationError: If month is outside 1..12 or year outside 1..9999
    """
    if not 1 <= month <= 12:
        raise ValidationError("month", "must be between 1 and 12")
    if not 1 <= year <= 9999:
        raise ValidationError("year", "must be between 1 and 9999")
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1).isoformat(), date(year, month, last_day).isoformat()
