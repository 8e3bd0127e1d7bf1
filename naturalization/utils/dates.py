"""
Date normalization for form and profile values.

Form entries, travel rows and the user profile store all hold dates as text in
whatever format the submitting form used. Each call site passes the formats it
accepts, in priority order, and gets back an explicit result instead of an
exception.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Sequence, Union

from dateutil.relativedelta import relativedelta

from naturalization.core.exceptions import DateParseError


class DateFormat:
    """strptime patterns for the date formats found in stored values."""

    ISO = "%Y-%m-%d"
    US = "%m/%d/%Y"
    DMY = "%d/%m/%Y"
    US_DASHED = "%m-%d-%Y"
    ISO_DATETIME = "%Y-%m-%d %H:%M:%S"


# Per-call-site format orders
UNLOCK_DATE_FORMATS = (DateFormat.ISO, DateFormat.US)
APPLICATION_DATE_FORMATS = (DateFormat.ISO, DateFormat.US, DateFormat.DMY)
ENTRY_DATE_FORMATS = (
    DateFormat.US,
    DateFormat.ISO,
    DateFormat.US_DASHED,
    DateFormat.ISO_DATETIME,
)
RECORD_DATE_FORMATS = (DateFormat.ISO, DateFormat.US)

DateInput = Union[str, date, None]


@dataclass(frozen=True)
class ParsedDate:
    """Result of a normalization attempt."""

    ok: bool
    value: Optional[date]
    text: Optional[str]
    matched_format: Optional[str] = None

    @property
    def iso(self) -> Optional[str]:
        return self.value.isoformat() if self.value else None


def normalize_date(text: DateInput, formats: Iterable[str]) -> ParsedDate:
    """
    Parse text with the first matching format.

    Args:
        text: Stored date text. date/datetime values pass through unchanged.
        formats: strptime patterns, tried in the order given

    Returns:
        ParsedDate; ok is False for empty or unparseable input. Never raises.

    Examples:
        >>> normalize_date("03/15/2025", UNLOCK_DATE_FORMATS).iso
        '2025-03-15'
        >>> normalize_date("15/03/2025", UNLOCK_DATE_FORMATS).ok
        False
    """
    if isinstance(text, datetime):
        return ParsedDate(ok=True, value=text.date(), text=text.isoformat())
    if isinstance(text, date):
        return ParsedDate(ok=True, value=text, text=text.isoformat())
    if text is None:
        return ParsedDate(ok=False, value=None, text=None)

    raw = str(text).strip()
    if not raw:
        return ParsedDate(ok=False, value=None, text=text)

    for fmt in formats:
        try:
            parsed = datetime.strptime(raw, fmt).date()
        except ValueError:
            continue
        return ParsedDate(ok=True, value=parsed, text=text, matched_format=fmt)

    return ParsedDate(ok=False, value=None, text=text)


def parse_date_or_raise(text: DateInput, formats: Sequence[str]) -> date:
    """Strict variant of normalize_date. Raises DateParseError on failure."""
    result = normalize_date(text, formats)
    if not result.ok:
        raise DateParseError(text if text is None else str(text), tuple(formats))
    return result.value


def format_iso(value: Optional[date]) -> str:
    return value.isoformat() if value else ""


def format_us(value: Optional[date]) -> str:
    return value.strftime(DateFormat.US) if value else ""


def format_long(value: Optional[date]) -> str:
    """'March 15, 2025' style, no zero padding on the day."""
    if not value:
        return ""
    return f"{value.strftime('%B')} {value.day}, {value.year}"


def add_years(value: date, years: int, day_adjustment: int = 0, roll_over: bool = False) -> date:
    """
    Calendar year addition followed by a day offset.

    Feb 29 plus a non-leap number of years lands on Feb 28, or on Mar 1 with
    roll_over=True.
    """
    target = value + relativedelta(years=years)
    if roll_over and target.day != value.day:
        target += timedelta(days=1)
    return target + timedelta(days=day_adjustment)


def subtract_months(value: date, months: int, day_adjustment: int = 0) -> date:
    """
    Calendar month subtraction followed by a day offset.

    The day of month is clamped to the target month's length, so
    2025-08-31 minus 6 months is 2025-02-28.
    """
    return value - relativedelta(months=months) + timedelta(days=day_adjustment)


def days_between_inclusive(start: date, end: date) -> int:
    """Number of calendar days from start through end, counting both ends."""
    return (end - start).days + 1
