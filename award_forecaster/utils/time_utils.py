"""
Calendar helpers for UTC month buckets.

Key concepts:
  - Month start: every bucket is identified by the first instant of its
    calendar month in UTC (``2024-05-01T00:00:00Z``).
  - Month key: the canonical ``"YYYY-MM"`` string for a month start.
  - Month label: short English month/year used in series and summaries
    (``"May 2024"``).

Parsing is lenient and never raises: upstream award dates arrive in several
shapes and a value that cannot be read yields ``None`` so the caller can skip
that record.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Optional

_MONTH_KEY_RE = re.compile(r"^(\d{4})-(\d{2})$")

# TED publishes dates as "2024-05-12+02:00" which fromisoformat() rejects.
_DATE_WITH_OFFSET_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})(Z|[+-]\d{2}:\d{2})$")

_MONTH_ABBR = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

_FALLBACK_FORMATS = (
    "%Y/%m/%d",
    "%d.%m.%Y",
    "%d %b %Y",
    "%b %Y",
    "%B %Y",
)


def utcnow() -> datetime:
    """Return the current UTC datetime with timezone info."""
    return datetime.now(tz=timezone.utc)


def start_of_month_utc(value: datetime) -> datetime:
    """Truncate ``value`` to the first instant of its UTC month.

    Naive datetimes are interpreted as UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return datetime(value.year, value.month, 1, tzinfo=timezone.utc)


def add_months(value: datetime, months: int) -> datetime:
    """Return the month start ``months`` calendar months after ``value``.

    ``months`` may be negative. The result is always a UTC month start.
    """
    start = start_of_month_utc(value)
    index = start.year * 12 + (start.month - 1) + months
    return datetime(index // 12, index % 12 + 1, 1, tzinfo=timezone.utc)


def months_between(late: datetime, early: datetime) -> int:
    """Signed whole-month difference ``late - early`` by calendar month."""
    late = start_of_month_utc(late)
    early = start_of_month_utc(early)
    return (late.year - early.year) * 12 + (late.month - early.month)


def format_month_key(value: datetime) -> str:
    """Return the canonical ``"YYYY-MM"`` key for ``value``'s UTC month."""
    start = start_of_month_utc(value)
    return f"{start.year:04d}-{start.month:02d}"


def format_label(value: datetime) -> str:
    """Return the short display label, e.g. ``"May 2024"``."""
    start = start_of_month_utc(value)
    return f"{_MONTH_ABBR[start.month - 1]} {start.year}"


def parse_date_input(value: Optional[str]) -> Optional[datetime]:
    """Parse a date/datetime string into an aware UTC datetime.

    Accepts ISO-8601 dates and datetimes (with or without offset), TED-style
    ``YYYY-MM-DD+HH:MM`` dates, and a handful of common display formats.

    Returns:
        Aware datetime, or ``None`` when ``value`` is empty or unparseable.
    """
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None

    match = _DATE_WITH_OFFSET_RE.match(text)
    if match:
        suffix = "+00:00" if match.group(2) == "Z" else match.group(2)
        text = f"{match.group(1)}T00:00:00{suffix}"

    parsed: Optional[datetime] = None
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        for fmt in _FALLBACK_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue

    if parsed is None:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except OverflowError:
        return None


def parse_month_input(value: Optional[str]) -> Optional[datetime]:
    """Parse an aggregate ``month`` field into its UTC month start.

    ``"YYYY-MM"`` keys are read directly; anything else goes through
    ``parse_date_input()``.
    """
    if not value or not isinstance(value, str):
        return None
    match = _MONTH_KEY_RE.match(value.strip())
    if match:
        year, month = int(match.group(1)), int(match.group(2))
        try:
            return datetime(year, month, 1, tzinfo=timezone.utc)
        except ValueError:
            return None
    parsed = parse_date_input(value)
    return start_of_month_utc(parsed) if parsed else None
