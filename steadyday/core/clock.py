"""
Application clock.

Every "now" the reminder core sees comes from a ClockService handed in by the
request boundary, so tests and staging environments can run against a frozen
or shifted timeline without touching wall-clock time.
"""

import threading
from datetime import datetime, timedelta, timezone as dt_timezone
from typing import Optional


class ClockService:
    """Wall clock plus an adjustable offset.

    `now()` always returns a timezone-aware UTC datetime.
    """

    def __init__(self, fixed_now: Optional[datetime] = None) -> None:
        self._lock = threading.Lock()
        self._offset = timedelta(0)
        self._fixed_now = fixed_now.astimezone(dt_timezone.utc) if fixed_now else None

    def system_now(self) -> datetime:
        if self._fixed_now is not None:
            return self._fixed_now
        return datetime.now(dt_timezone.utc)

    def now(self) -> datetime:
        with self._lock:
            offset = self._offset
        return self.system_now() + offset

    def advance(self, *, seconds: float) -> timedelta:
        """Move the clock forward and return the resulting offset."""
        if seconds <= 0:
            raise ValueError("seconds must be > 0")
        with self._lock:
            self._offset += timedelta(seconds=seconds)
            return self._offset

    def reset(self) -> None:
        with self._lock:
            self._offset = timedelta(0)


clock = ClockService()
