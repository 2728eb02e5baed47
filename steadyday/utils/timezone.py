from datetime import datetime, date, time, timedelta, timezone as dt_timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from steadyday.core.config import settings


def get_zoneinfo(tz_name: Optional[str] = None) -> tzinfo:
    """Resolve a TZ database name, defaulting to settings.DEFAULT_TIMEZONE.

    Falls back to UTC when the name is unknown or tzdata is unavailable.
    """
    tz_name = tz_name or getattr(settings, "DEFAULT_TIMEZONE", None)
    if not tz_name:
        return dt_timezone.utc
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        return dt_timezone.utc


def utc_now() -> datetime:
    return datetime.now(dt_timezone.utc)


def to_utc_aware(dt: datetime | None) -> datetime | None:
    """
    Normalize any datetime to UTC-aware (tzinfo=UTC) for APIs needing tz-aware values.
    - Aware datetimes are converted to UTC
    - Naive datetimes are assumed UTC and tz attached
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=dt_timezone.utc)
    return dt.astimezone(dt_timezone.utc)


def to_utc_naive(dt: datetime | None) -> datetime | None:
    """
    Normalize any datetime to UTC-naive (tzinfo=None) for backends storing naive timestamps.
    - Aware datetimes are converted to UTC and tzinfo is stripped
    - Naive datetimes are returned as-is (assumed UTC)
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(dt_timezone.utc).replace(tzinfo=None)


def local_wall_clock(on_day: date, at: time, tz: tzinfo) -> datetime:
    """Return `at` on `on_day` in `tz`, as a UTC-aware datetime."""
    return datetime.combine(on_day, at, tzinfo=tz).astimezone(dt_timezone.utc)


def next_local_occurrence(now: datetime, at: time, tz: tzinfo) -> datetime:
    """The first `at` wall-clock instant in `tz` strictly after `now`."""
    local_now = to_utc_aware(now).astimezone(tz)
    candidate = local_wall_clock(local_now.date(), at, tz)
    if candidate <= to_utc_aware(now):
        candidate = local_wall_clock(local_now.date() + timedelta(days=1), at, tz)
    return candidate


def tomorrow_at(now: datetime, at: time, tz: tzinfo) -> datetime:
    """`at` wall-clock time on the calendar day after `now` in `tz`."""
    local_now = to_utc_aware(now).astimezone(tz)
    return local_wall_clock(local_now.date() + timedelta(days=1), at, tz)
