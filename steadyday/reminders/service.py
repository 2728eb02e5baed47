"""
Reminder scheduler: the lifecycle operations behind the reminder endpoints.

Every operation takes `now` from the injected clock (or an explicit argument),
runs inside one session transaction, and rolls back and re-raises on any
failure. Retries are left to the caller.
"""
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from steadyday.core.clock import ClockService
from steadyday.utils.timezone import get_zoneinfo
from . import repository
from .config import settings as reminder_settings
from .errors import InvalidReminderStateError, ReminderNotFoundError
from .metrics import (
    reminders_delivered_total,
    reminders_dismissed_total,
    reminders_listed_total,
    reminders_read_total,
    reminders_snoozed_total,
)
from .models import Reminder
from .scheduling import (
    ReminderState,
    compute_snooze_until,
    parse_snooze_duration,
    reminder_state,
    visible_sort_key,
)

logger = logging.getLogger(__name__)


@dataclass
class VisibleReminders:
    reminders: List[Reminder]
    unread_count: int
    newly_delivered: int = 0


class ReminderScheduler:
    """Reminder lifecycle for a single owner-scoped request"""

    def __init__(
        self,
        db: Session,
        clock: ClockService,
        tz: Optional[tzinfo] = None,
        page_size: Optional[int] = None,
    ):
        self.db = db
        self.clock = clock
        self.tz = tz or get_zoneinfo(reminder_settings.LOCAL_TIMEZONE)
        self.page_size = page_size or reminder_settings.PAGE_SIZE

    @contextmanager
    def _unit_of_work(self):
        try:
            yield
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def _get_owned(self, owner: str, reminder_id: UUID) -> Reminder:
        reminder = repository.get_owned_reminder(self.db, owner, reminder_id)
        if reminder is None:
            raise ReminderNotFoundError(reminder_id)
        return reminder

    # --- listing / delivery ---

    def compute_visible(self, owner: str, now: datetime) -> List[Reminder]:
        """Phase one: the owner's visible page, ordered by priority rank then schedule."""
        reminders = repository.list_visible_reminders(self.db, owner, now, limit=self.page_size)
        # stable, so ties keep the SQL id order
        return sorted(reminders, key=visible_sort_key)

    def persist_deliveries(self, reminders: List[Reminder], now: datetime) -> int:
        """Phase two: mark undelivered reminders of the page as delivered at `now`."""
        pending = [r for r in reminders if r.delivered_at is None]
        return repository.mark_delivered(self.db, [r.id for r in pending], now)

    def list_visible(self, owner: str, now: Optional[datetime] = None) -> VisibleReminders:
        now = now or self.clock.now()
        with self._unit_of_work():
            reminders = self.compute_visible(owner, now)
            delivered = self.persist_deliveries(reminders, now)

        for r in reminders:
            if r.delivered_at is None:
                # another request delivered or dismissed it between our read and our update
                self.db.refresh(r)
        reminders = [r for r in reminders if r.dismissed_at is None]

        unread_count = sum(1 for r in reminders if r.read_at is None)
        reminders_listed_total.inc()
        if delivered:
            reminders_delivered_total.inc(delivered)
            logger.info(f"Delivered {delivered} reminder(s) to user {owner}")
        return VisibleReminders(reminders=reminders, unread_count=unread_count, newly_delivered=delivered)

    # --- transitions ---

    def _ensure_not_dismissed(self, reminder: Reminder, now: datetime, action: str) -> None:
        if reminder_state(reminder, now) is ReminderState.DISMISSED:
            raise InvalidReminderStateError(f"Cannot {action} a dismissed reminder.")

    def _reload(self, reminder: Reminder) -> Reminder:
        """Re-read a row whose conditional update matched nothing."""
        self.db.refresh(reminder)
        return reminder

    def mark_read(self, owner: str, reminder_id: UUID, now: Optional[datetime] = None) -> Reminder:
        now = now or self.clock.now()
        with self._unit_of_work():
            reminder = self._get_owned(owner, reminder_id)
            self._ensure_not_dismissed(reminder, now, "mark as read")
            if reminder.read_at is None:
                if repository.set_read(self.db, owner, reminder_id, now):
                    reminders_read_total.inc()
                else:
                    # dismissed (rejected below) or read by a concurrent request (no-op)
                    self._ensure_not_dismissed(self._reload(reminder), now, "mark as read")
        return reminder

    def dismiss(self, owner: str, reminder_id: UUID, now: Optional[datetime] = None) -> Reminder:
        now = now or self.clock.now()
        with self._unit_of_work():
            reminder = self._get_owned(owner, reminder_id)
            if reminder.dismissed_at is None:
                if repository.set_dismissed(self.db, owner, reminder_id, now):
                    reminders_dismissed_total.inc()
                else:
                    self._reload(reminder)
        return reminder

    def dismiss_all(self, owner: str, now: Optional[datetime] = None) -> int:
        now = now or self.clock.now()
        with self._unit_of_work():
            dismissed = repository.dismiss_all(self.db, owner, now)
        if dismissed:
            reminders_dismissed_total.inc(dismissed)
        logger.info(f"Cleared {dismissed} reminder(s) for user {owner}")
        return dismissed

    def snooze(self, owner: str, reminder_id: UUID, duration, now: Optional[datetime] = None) -> Reminder:
        duration = parse_snooze_duration(duration)
        now = now or self.clock.now()
        with self._unit_of_work():
            reminder = self._get_owned(owner, reminder_id)
            self._ensure_not_dismissed(reminder, now, "snooze")
            snoozed_until = compute_snooze_until(duration, now, self.tz)
            if not repository.set_snoozed(self.db, owner, reminder_id, snoozed_until):
                self._ensure_not_dismissed(self._reload(reminder), now, "snooze")
        reminders_snoozed_total.labels(duration=duration.value).inc()
        logger.debug(f"Reminder {reminder_id} snoozed until {snoozed_until.isoformat()} ({duration.value})")
        return reminder
