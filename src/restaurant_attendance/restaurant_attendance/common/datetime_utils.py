from __future__ import annotations

import calendar
import math
from datetime import date, datetime, time, timedelta, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..core.constants import DEFAULT_TIMEZONE
from ..core.exceptions import ValidationError


def _text(value) -> str:
    return str(value).strip() if value is not None else ""


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime(_text(value), "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError("invalid_date", "Date must be YYYY-MM-DD")


def parse_hhmm(value: str, field_name: str = "time") -> time:
    try:
        return datetime.strptime(_text(value), "%H:%M").time()
    except ValueError:
        raise ValidationError("invalid_time", f"{field_name} must be HH:MM")


@lru_cache(maxsize=64)
def zone_for(name: str | None) -> ZoneInfo:
    """Resolve a restaurant's IANA zone, falling back to the platform default."""
    try:
        return ZoneInfo(name or DEFAULT_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo(DEFAULT_TIMEZONE)


def now_local(tz: ZoneInfo) -> datetime:
    """Current restaurant-local wall time (naive).

    Note: Wrapped so tests can patch/mock easier.
    """
    return datetime.now(tz).replace(tzinfo=None, microsecond=0)


def to_local_naive(value: datetime, tz: ZoneInfo) -> datetime:
    """Aware datetimes are converted to the restaurant zone; naive ones are already local."""
    if value.tzinfo is None:
        return value
    return value.astimezone(tz).replace(tzinfo=None)


def from_epoch(seconds: float, tz: ZoneInfo) -> datetime:
    # Values this large are milliseconds.
    if seconds > 1e11:
        seconds = seconds / 1000.0
    return datetime.fromtimestamp(seconds, tz=timezone.utc).astimezone(tz).replace(tzinfo=None)


def combine_clock_out(clock_in: datetime, clock_out_time: time) -> datetime:
    """Place an HH:MM departure after ``clock_in``; earlier times roll to the next day."""
    clock_out = datetime.combine(clock_in.date(), clock_out_time)
    if clock_out < clock_in:
        clock_out += timedelta(days=1)
    return clock_out


def compute_hours(clock_in: datetime, clock_out: datetime, break_minutes: int = 0) -> float:
    """Worked hours between two instants minus the break, never negative.

    A clock-out that lands before the clock-in is treated as an overnight shift
    that was recorded on the same calendar date.
    """
    delta = clock_out - clock_in
    if delta < timedelta(0):
        delta += timedelta(days=1)
    hours = delta.total_seconds() / 3600 - (break_minutes or 0) / 60
    return round(max(hours, 0.0), 2)


def is_overnight(clock_in: datetime, clock_out: datetime | None) -> bool:
    return clock_out is not None and clock_out.date() != clock_in.date()


def hours_between_times(start: time, end: time) -> float:
    base = date(2000, 1, 1)
    return compute_hours(datetime.combine(base, start), datetime.combine(base, end))


def format_hours(hours: float) -> str:
    """8.5 -> '8:30'."""
    hours = max(float(hours or 0), 0.0)
    h = math.floor(hours)
    m = round((hours - h) * 60)
    if m == 60:
        h, m = h + 1, 0
    return f"{h}:{m:02d}"


def month_bounds(year: int, month: int) -> tuple[date, date]:
    if not 1 <= int(month) <= 12:
        raise ValidationError("invalid_month", "Month must be between 1 and 12")
    last_day = calendar.monthrange(int(year), int(month))[1]
    return date(int(year), int(month), 1), date(int(year), int(month), last_day)


def iter_days(start: date, end: date):
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)
