from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator

from steadyday.utils.timezone import to_utc_aware, to_utc_naive


class UTCDateTime(TypeDecorator):
    """timestamptz that always round-trips as a UTC-aware datetime.

    Backends without native timezone support (SQLite) hand back naive values;
    those are stored and read as UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if dialect.name == "sqlite":
            return to_utc_naive(value)
        return to_utc_aware(value)

    def process_result_value(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        return to_utc_aware(value)
