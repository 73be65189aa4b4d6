"""
Date canonicalization for MIS extracts.

Every date-like value (``last_updated_date``, ``application_date``) passes
through ``normalize_date`` before it is compared or stored. The canonical
form is ISO-8601: ``YYYY-MM-DD`` for midnight values, ``YYYY-MM-DDTHH:MM:SS``
otherwise.

Invariants:
    - Idempotent: normalize_date(normalize_date(x)) == normalize_date(x).
    - Day and month are never swapped. Numeric dates (``17/01/2025``) are
      read with one fixed convention (day-first unless told otherwise); a
      reading that yields an invalid month is rejected, never retried the
      other way round.
    - Timezone offsets are dropped; the wall-clock time in the extract is kept.

ZERO I/O.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta
from typing import Any

from mis_kernel.exceptions import DateParseError

MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

# Excel 1900 date system (with the Lotus leap-year bug folded into the epoch)
_EXCEL_EPOCH = datetime(1899, 12, 30)
_EXCEL_MAX_SERIAL = 2958465  # 9999-12-31

_GMT_OFFSET = re.compile(r"\s*GMT[+-]\d{2}:?\d{2}\s*", re.IGNORECASE)
_TZ_NAME_SUFFIX = re.compile(r"\s*\([^)]*\)\s*$")
_SERIAL = re.compile(r"^\d+(\.\d+)?$")
_NUMERIC_DATE = re.compile(
    r"^(\d{1,2})[/.-](\d{1,2})[/.-](\d{2}|\d{4})"
    r"(?:[ T](\d{1,2}):(\d{2})(?::(\d{2}))?)?$"
)

# Month-name layouts; unambiguous so order does not matter
_NAMED_FORMATS = (
    "%d-%b-%Y",
    "%d-%b-%y",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d %Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%d-%b-%Y %H:%M:%S",
    "%d-%b-%Y %H:%M",
    "%a %b %d %Y %H:%M:%S",
    "%a %b %d %Y",
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M:%S",
)


def _from_serial(serial: float, original: Any) -> datetime:
    if serial < 1 or serial > _EXCEL_MAX_SERIAL:
        raise DateParseError(original, "spreadsheet serial out of range")
    return _EXCEL_EPOCH + timedelta(days=serial)


def _from_numeric(match: re.Match, original: Any, day_first: bool) -> datetime:
    first, second, year_text, hh, mm, ss = match.groups()
    day, month = (int(first), int(second)) if day_first else (int(second), int(first))
    year = int(year_text)
    if len(year_text) == 2:
        year += 2000
    if not 1 <= month <= 12:
        convention = "day-first" if day_first else "month-first"
        raise DateParseError(original, f"month {month} out of range for {convention} date")
    try:
        return datetime(year, month, day, int(hh or 0), int(mm or 0), int(ss or 0))
    except ValueError as exc:
        raise DateParseError(original, str(exc)) from exc


def _parse_text(text: str, original: Any, day_first: bool) -> datetime:
    cleaned = _TZ_NAME_SUFFIX.sub("", text)
    cleaned = _GMT_OFFSET.sub(" ", cleaned).strip()
    if not cleaned:
        raise DateParseError(original, "empty value")

    if _SERIAL.match(cleaned):
        return _from_serial(float(cleaned), original)

    try:
        parsed = datetime.fromisoformat(cleaned.replace("Z", "+00:00"))
        return parsed.replace(tzinfo=None)
    except ValueError:
        pass

    match = _NUMERIC_DATE.match(cleaned)
    if match:
        return _from_numeric(match, original, day_first)

    for fmt in _NAMED_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt)
        except ValueError:
            continue
    raise DateParseError(original)


def parse_date(value: Any, *, day_first: bool = True) -> datetime:
    """
    Parse a date-like cell value into a naive ``datetime``.

    Accepts datetime/date objects, spreadsheet serial numbers, ISO strings,
    browser-style strings (``Fri Jan 17 2025 00:00:00 GMT+0530 (IST)``),
    month-name layouts and numeric ``DD/MM/YYYY`` (or ``MM/DD/YYYY`` with
    ``day_first=False``).

    Raises:
        DateParseError: value is empty or not a recognizable date.
    """
    if value is None:
        raise DateParseError(value, "empty value")
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, bool):
        raise DateParseError(value, "boolean is not a date")
    if isinstance(value, (int, float)):
        return _from_serial(float(value), value)
    return _parse_text(str(value).strip(), value, day_first)


def normalize_date(value: Any, *, day_first: bool = True) -> str:
    """Canonical ISO form of a date-like value. Idempotent.

    Raises:
        DateParseError: value is empty or not a recognizable date.
    """
    parsed = parse_date(value, day_first=day_first).replace(microsecond=0)
    if parsed.time() == time.min:
        return parsed.date().isoformat()
    return parsed.isoformat(timespec="seconds")


def try_normalize_date(value: Any, *, day_first: bool = True) -> str | None:
    """Like ``normalize_date`` but returns None for empty or unparseable values."""
    try:
        return normalize_date(value, day_first=day_first)
    except DateParseError:
        return None


def month_label(value: Any, *, day_first: bool = True) -> str:
    """Reporting month for a date-like value, e.g. ``"Jan 2025"``."""
    parsed = parse_date(value, day_first=day_first)
    return f"{MONTH_ABBREVIATIONS[parsed.month - 1]} {parsed.year}"
