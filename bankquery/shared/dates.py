"""
Date parsing and calendar arithmetic.

Accepted input formats (tried in order):
  - ISO 8601 beginning with YYYY-MM-DD (optional time, trailing Z)
  - MM/DD/YYYY or MM/DD/YY, also with - or . separators (two-digit years are 20YY)
  - YYYY/MM/DD (or YYYY.MM.DD)
  - "Month Day, Year" with optional ordinal suffix ("Jan 5th, 2023")

All returned datetimes are naive; timezone-aware ISO values are converted
to UTC first.
"""

from __future__ import annotations

import calendar
import re
from datetime import datetime, timedelta, timezone

from bankquery.models import RelativeTime, TimeUnit

_ISO_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")
_US_DATE = re.compile(r"^(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{2,4})$")
_YMD_SLASH = re.compile(r"^(\d{4})[/\-.](\d{1,2})[/\-.](\d{1,2})$")
_MONTH_DAY_YEAR = re.compile(r"^([A-Za-z]+)\.?\s+(\d{1,2})(?:st|nd|rd|th)?\s+(\d{4})$")
_MONTH_WORD = re.compile(r"\b(jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)\w*\b", re.IGNORECASE)
_DAY_WORD = re.compile(r"\b(mon|tue|wed|thu|fri|sat|sun)\w*\b", re.IGNORECASE)

MONTHS: dict[str, int] = {}
for _i in range(1, 13):
    MONTHS[calendar.month_name[_i].lower()] = _i
    MONTHS[calendar.month_abbr[_i].lower()] = _i
MONTHS["sept"] = 9


def _safe_date(year: int, month: int, day: int) -> datetime | None:
    try:
        return datetime(year, month, day)
    except ValueError:
        return None


def parse_date(value) -> datetime | None:
    """Parse a cell or prompt value into a naive datetime; None when unparseable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return _to_naive(value)
    text = str(value).strip()
    if not text:
        return None

    if _ISO_PREFIX.match(text):
        iso = text[:-1] + "+00:00" if text.endswith("Z") else text
        try:
            return _to_naive(datetime.fromisoformat(iso))
        except (ValueError, OverflowError):
            pass

    m = _US_DATE.match(text)
    if m:
        month, day, year = int(m.group(1)), int(m.group(2)), int(m.group(3))
        if year < 100:
            year += 2000
        return _safe_date(year, month, day)

    m = _YMD_SLASH.match(text)
    if m:
        return _safe_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))

    m = _MONTH_DAY_YEAR.match(re.sub(r"\s+", " ", text.replace(",", " ")).strip())
    if m:
        month = MONTHS.get(m.group(1).lower())
        if month:
            return _safe_date(int(m.group(3)), month, int(m.group(2)))

    return None


def _to_naive(dt: datetime) -> datetime:
    if dt.tzinfo is not None:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def shift_months(dt: datetime, months: int) -> datetime:
    """Move *dt* by *months* calendar months, clamping the day to month end."""
    total = dt.year * 12 + (dt.month - 1) + months
    year, month = divmod(total, 12)
    month += 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def subtract_relative(now: datetime, rel: RelativeTime) -> datetime:
    """Return *now* minus the relative offset (days, months or years).

    Offsets reaching past year 1 clamp to ``datetime.min``.
    """
    try:
        if rel.unit == TimeUnit.days:
            return now - timedelta(days=rel.value)
        if rel.unit == TimeUnit.months:
            return shift_months(now, -rel.value)
        return shift_months(now, -12 * rel.value)
    except (ValueError, OverflowError):
        return datetime.min


def looks_like_date(text: str) -> bool:
    """Cheap pre-check used by type inference before attempting a parse."""
    if "/" in text or "-" in text:
        return True
    return bool(_MONTH_WORD.search(text) or _DAY_WORD.search(text))
