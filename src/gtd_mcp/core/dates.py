"""Calendar-day arithmetic and the Tasks-plugin date markers.

All dates are local calendar days (``datetime.date``); there is no time of day
and no timezone handling. Markers on a task line look like::

    📅 2026-02-18   due date
    ✅ 2026-02-17   completion date
"""

import calendar
import re
from datetime import date, datetime

DUE_MARKER = "📅"
DONE_MARKER = "✅"

DATE_FORMAT = "%Y-%m-%d"

DUE_DATE_PATTERN = re.compile(DUE_MARKER + r"\s*(\d{4}-\d{2}-\d{2})")
COMPLETION_DATE_PATTERN = re.compile(DONE_MARKER + r"\s*(\d{4}-\d{2}-\d{2})")

# Marker plus any whitespace before it, for removal
_DUE_TOKEN = re.compile(r"\s*" + DUE_MARKER + r"\s*\d{4}-\d{2}-\d{2}")
_DONE_TOKEN = re.compile(r"\s*" + DONE_MARKER + r"\s*\d{4}-\d{2}-\d{2}")


def today() -> date:
    """Return today's local calendar date."""
    return date.today()


def as_day(value: date | datetime) -> date:
    """Truncate a datetime to its calendar day (dates pass through)."""
    if isinstance(value, datetime):
        return value.date()
    return value


def diff_in_days(target: date | datetime, now: date | datetime) -> int:
    """Whole days from ``now`` to ``target`` (negative when target is past)."""
    return (as_day(target) - as_day(now)).days


def day_of_week(now: date) -> int:
    """Day of week with 0 = Sunday ... 6 = Saturday."""
    # date.weekday() is 0 = Monday
    return (now.weekday() + 1) % 7


def days_to_end_of_month(now: date) -> int:
    """Days from ``now`` to the last day of its month."""
    last = calendar.monthrange(now.year, now.month)[1]
    return diff_in_days(date(now.year, now.month, last), now)


def _next_month(now: date) -> tuple[int, int]:
    if now.month == 12:
        return now.year + 1, 1
    return now.year, now.month + 1


def days_to_start_of_next_month(now: date) -> int:
    """Days from ``now`` to the 1st of the following month."""
    year, month = _next_month(now)
    return diff_in_days(date(year, month, 1), now)


def days_to_end_of_next_month(now: date) -> int:
    """Days from ``now`` to the last day of the following month."""
    year, month = _next_month(now)
    last = calendar.monthrange(year, month)[1]
    return diff_in_days(date(year, month, last), now)


def parse_iso_date(value: str) -> date | None:
    """Parse ``YYYY-MM-DD``; returns None for anything that is not a real date."""
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError:
        return None


def format_date(value: date) -> str:
    return value.strftime(DATE_FORMAT)


def parse_due_date(raw_line: str) -> date | None:
    """Return the 📅 due date on a line, or None if absent or malformed."""
    match = DUE_DATE_PATTERN.search(raw_line)
    if not match:
        return None
    return parse_iso_date(match.group(1))


def parse_completion_date(raw_line: str) -> date | None:
    """Return the ✅ completion date on a line, or None if absent or malformed."""
    match = COMPLETION_DATE_PATTERN.search(raw_line)
    if not match:
        return None
    return parse_iso_date(match.group(1))


def _set_marker(
    raw_line: str,
    pattern: re.Pattern,
    token_pattern: re.Pattern,
    marker: str,
    value: date | None,
) -> str:
    if value is None:
        return token_pattern.sub("", raw_line).rstrip()

    token = f"{marker} {format_date(value)}"
    if pattern.search(raw_line):
        return pattern.sub(token, raw_line, count=1)
    return f"{raw_line.rstrip()} {token}"


def set_due_date(raw_line: str, value: date | None) -> str:
    """Replace, append, or (with None) remove the 📅 due date on a line."""
    return _set_marker(raw_line, DUE_DATE_PATTERN, _DUE_TOKEN, DUE_MARKER, value)


def set_completion_date(raw_line: str, value: date | None) -> str:
    """Replace, append, or (with None) remove the ✅ completion date on a line."""
    return _set_marker(
        raw_line, COMPLETION_DATE_PATTERN, _DONE_TOKEN, DONE_MARKER, value
    )
