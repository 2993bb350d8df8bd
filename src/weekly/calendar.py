"""ISO-8601 week arithmetic for the weekly deep dive."""

import re
from datetime import UTC, date, datetime, time, timedelta


_WEEK_PATTERN = re.compile(r"^(\d{4})-W(\d{2})$")


def iso_week(value: date | datetime) -> str:
    """Format the ISO week containing a date.

    Weeks start on Monday and week 1 contains the year's first Thursday,
    so 2025-12-31 falls in 2026-W01.

    Args:
        value: Calendar date (a datetime contributes its date part).

    Returns:
        Week string such as '2026-W07'.
    """
    if isinstance(value, datetime):
        value = value.date()
    year, week, _ = value.isocalendar()
    return f"{year}-W{week:02d}"


def parse_iso_week(week_iso: str) -> tuple[int, int]:
    """Split a week string into (year, week).

    Raises:
        ValueError: If the string is malformed or the week does not exist.
    """
    match = _WEEK_PATTERN.match(week_iso)
    if match is None:
        msg = f"Invalid ISO week format: {week_iso}"
        raise ValueError(msg)

    year, week = int(match.group(1)), int(match.group(2))
    try:
        date.fromisocalendar(year, week, 1)
    except ValueError as e:
        msg = f"Invalid ISO week format: {week_iso}"
        raise ValueError(msg) from e
    return year, week


def week_date_range(week_iso: str) -> tuple[datetime, datetime]:
    """Get the UTC bounds of an ISO week.

    Args:
        week_iso: Week string such as '2026-W07'.

    Returns:
        (Monday 00:00:00, Sunday 23:59:59.999999), both UTC.

    Raises:
        ValueError: If the week string is malformed.
    """
    year, week = parse_iso_week(week_iso)
    monday = date.fromisocalendar(year, week, 1)
    sunday = monday + timedelta(days=6)
    return (
        datetime.combine(monday, time.min, tzinfo=UTC),
        datetime.combine(sunday, time.max, tzinfo=UTC),
    )


def as_utc(value: datetime) -> datetime:
    """Treat a naive timestamp as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
