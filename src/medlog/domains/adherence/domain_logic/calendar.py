"""Calendar helpers shared by the analyzers.

All bucketing happens in UTC: a dose logged at 23:30 in New York lands on the
next UTC day and in the "night" band. Naive datetimes are read as UTC.
"""

from __future__ import annotations

import calendar as _stdcalendar
from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterator

# ---------------------------------------------------------------------------
# Bands and day names
# ---------------------------------------------------------------------------

TIME_BANDS = ("morning", "afternoon", "evening", "night")

# Sunday first, matching how the mobile client renders its week strip.
WEEKDAY_NAMES = (
    "sunday",
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
)
WORKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday")
WEEKEND = ("saturday", "sunday")

PERIOD_DAYS = {"7days": 7, "30days": 30, "90days": 90}
PERIOD_MONTHS = {"6months": 6, "1year": 12}
DEFAULT_PERIOD = "30days"


def to_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse an ISO-8601 string (``Z`` suffix allowed) into UTC."""
    if isinstance(value, datetime):
        return to_utc(value)
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return to_utc(datetime.fromisoformat(text))


def day_key(value: datetime) -> date:
    """UTC calendar day of a timestamp."""
    return to_utc(value).date()


def time_band(value: datetime) -> str:
    """Fixed hour band of a timestamp (UTC hour)."""
    hour = to_utc(value).hour
    if 5 <= hour < 12:
        return "morning"
    if 12 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 21:
        return "evening"
    return "night"


def weekday_name(value: datetime | date) -> str:
    if isinstance(value, datetime):
        value = day_key(value)
    # date.weekday() is Monday=0
    return WEEKDAY_NAMES[(value.weekday() + 1) % 7]


def week_start(value: date) -> date:
    """Monday of the ISO week containing ``value``."""
    return value - timedelta(days=value.weekday())


def week_key(value: date) -> str:
    iso_year, iso_week, _ = value.isocalendar()
    return f"{iso_year}-W{iso_week:02d}"


def iter_days(first: date, last: date) -> Iterator[date]:
    """Every calendar day from ``first`` to ``last`` inclusive."""
    current = first
    while current <= last:
        yield current
        current += timedelta(days=1)


def round_half_up(value: float, ndigits: int = 0) -> float | int:
    """Round with ties away from zero, the way dashboards display numbers.

    Python's ``round`` uses banker's rounding (``round(2.5) == 2``); every
    figure this package reports goes through here instead. ``ndigits=0``
    returns an ``int``.
    """
    quantum = Decimal(1).scaleb(-ndigits)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    if ndigits == 0:
        return int(rounded)
    return float(rounded)


def _subtract_months(value: datetime, months: int) -> datetime:
    month_index = value.month - 1 - months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, _stdcalendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def period_bounds(period: str, now: datetime) -> tuple[datetime, datetime]:
    """Resolve a named look-back period ending at ``now``.

    Unknown period names fall back to 30 days.
    """
    end = to_utc(now)
    if period in PERIOD_MONTHS:
        return _subtract_months(end, PERIOD_MONTHS[period]), end
    days = PERIOD_DAYS.get(period, PERIOD_DAYS[DEFAULT_PERIOD])
    return end - timedelta(days=days), end
