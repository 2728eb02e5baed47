"""
Pure reminder scheduling rules: visibility, ordering, lifecycle state and
snooze targets.

Nothing here touches the database or reads the wall clock; callers pass `now`.
"""
from datetime import datetime, time, timedelta, tzinfo
from enum import Enum
from typing import Optional, Tuple, Union

from steadyday.utils.timezone import next_local_occurrence, to_utc_aware, tomorrow_at
from .errors import InvalidSnoozeDurationError


# Priority labels do not sort alphabetically into the order we want
PRIORITY_RANK = {"important": 0, "normal": 1, "gentle": 2}
DEFAULT_PRIORITY_RANK = PRIORITY_RANK["normal"]

LUNCH_TIME = time(13, 0)
MORNING_TIME = time(9, 0)


class SnoozeDuration(str, Enum):
    TEN_MINUTES = "10min"
    THIRTY_MINUTES = "30min"
    ONE_HOUR = "1hour"
    AFTER_LUNCH = "after_lunch"
    TOMORROW_MORNING = "tomorrow_morning"


SNOOZE_OFFSETS = {
    SnoozeDuration.TEN_MINUTES: timedelta(minutes=10),
    SnoozeDuration.THIRTY_MINUTES: timedelta(minutes=30),
    SnoozeDuration.ONE_HOUR: timedelta(minutes=60),
}


class ReminderState(str, Enum):
    PENDING = "pending"
    READY = "ready"
    DELIVERED_UNREAD = "delivered_unread"
    DELIVERED_READ = "delivered_read"
    SNOOZED = "snoozed"
    DISMISSED = "dismissed"


def priority_rank(priority: Optional[str]) -> int:
    return PRIORITY_RANK.get(priority or "", DEFAULT_PRIORITY_RANK)


def visible_sort_key(reminder) -> Tuple[int, datetime]:
    return priority_rank(reminder.priority), reminder.scheduled_for


def is_visible(reminder, now: datetime) -> bool:
    """A reminder is visible iff it is not dismissed and either due and never
    snoozed, or its snooze has elapsed."""
    if reminder.dismissed_at is not None:
        return False
    if reminder.snoozed_until is None:
        return reminder.scheduled_for <= now
    return reminder.snoozed_until <= now


def reminder_state(reminder, now: datetime) -> ReminderState:
    if reminder.dismissed_at is not None:
        return ReminderState.DISMISSED
    if not is_visible(reminder, now):
        if reminder.snoozed_until is not None:
            return ReminderState.SNOOZED
        return ReminderState.PENDING
    if reminder.delivered_at is None:
        return ReminderState.READY
    if reminder.read_at is None:
        return ReminderState.DELIVERED_UNREAD
    return ReminderState.DELIVERED_READ


def parse_snooze_duration(value: Union[str, SnoozeDuration, None]) -> SnoozeDuration:
    try:
        return SnoozeDuration(value)
    except ValueError:
        raise InvalidSnoozeDurationError(value) from None


def compute_snooze_until(duration: Union[str, SnoozeDuration], now: datetime, tz: tzinfo) -> datetime:
    """Instant a snoozed reminder resurfaces.

    Fixed offsets are added to `now`; `after_lunch` and `tomorrow_morning`
    are wall-clock targets in `tz`. The result is UTC-aware.
    """
    duration = parse_snooze_duration(duration)
    now = to_utc_aware(now)
    if duration in SNOOZE_OFFSETS:
        return now + SNOOZE_OFFSETS[duration]
    if duration is SnoozeDuration.AFTER_LUNCH:
        return next_local_occurrence(now, LUNCH_TIME, tz)
    return tomorrow_at(now, MORNING_TIME, tz)
