"""Reporting-calendar date helpers.

Every timestamp is bucketed into a calendar day at a fixed UTC offset
(UTC+9 by default) so that "same day" comparisons do not depend on the
server's local timezone.  Days are exchanged as ``YYYY-MM-DD`` strings,
which sort lexicographically in date order.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone

REPORTING_UTC_OFFSET_HOURS = 9

DATE_FORMAT = "%Y-%m-%d"

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def reporting_tz(offset_hours: int = REPORTING_UTC_OFFSET_HOURS) -> timezone:
    """Return the fixed-offset tzinfo for the reporting calendar."""
    return timezone(timedelta(hours=offset_hours))


def parse_ts(ts_str: str) -> datetime | None:
    """Parse an RFC 3339 timestamp string.

    Naive timestamps are treated as UTC.  Returns ``None`` when the value
    cannot be parsed.
    """
    try:
        dt = datetime.fromisoformat(ts_str.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def parse_date(date_str: str) -> date:
    """Parse a ``YYYY-MM-DD`` string.  Raises ``ValueError`` if malformed."""
    return datetime.strptime(date_str, DATE_FORMAT).date()


def is_valid_date(date_str: object) -> bool:
    """Return ``True`` if *date_str* is a well-formed ``YYYY-MM-DD`` string."""
    if not isinstance(date_str, str) or not _DATE_RE.match(date_str):
        return False
    try:
        parse_date(date_str)
    except ValueError:
        return False
    return True


def to_reporting_date(
    ts_str: str,
    offset_hours: int = REPORTING_UTC_OFFSET_HOURS,
) -> str:
    """Return the reporting-calendar day a timestamp falls on.

    Raises ``ValueError`` if *ts_str* is not a parseable timestamp.
    """
    dt = parse_ts(ts_str)
    if dt is None:
        raise ValueError(f"Invalid timestamp: {ts_str!r}")
    return dt.astimezone(reporting_tz(offset_hours)).strftime(DATE_FORMAT)


def next_reporting_day(date_str: str) -> str:
    """Return the calendar day after *date_str*."""
    return add_days(date_str, 1)


def add_days(date_str: str, days: int) -> str:
    """Shift a ``YYYY-MM-DD`` string by *days* (may be negative)."""
    return (parse_date(date_str) + timedelta(days=days)).strftime(DATE_FORMAT)


def days_between(start: str, end: str) -> int:
    """Return the number of calendar days from *start* to *end*."""
    return (parse_date(end) - parse_date(start)).days


def today_reporting(
    now: datetime | None = None,
    offset_hours: int = REPORTING_UTC_OFFSET_HOURS,
) -> str:
    """Return today's date on the reporting calendar."""
    current = now if now is not None else datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    return current.astimezone(reporting_tz(offset_hours)).strftime(DATE_FORMAT)


def utc_now() -> str:
    """Return the current UTC time as an RFC 3339 string with ``Z`` suffix."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
