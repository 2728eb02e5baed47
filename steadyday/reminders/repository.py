from datetime import datetime
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import and_, case, or_, select, update
from sqlalchemy.orm import Session

from .models import Reminder, ReminderPreferences
from .schemas import ReminderCreate
from .scheduling import DEFAULT_PRIORITY_RANK, PRIORITY_RANK
from steadyday.utils.timezone import to_utc_aware


DEFAULT_PREFERENCES = {
    "reminders_enabled": True,
    "quiet_hours_start": "22:00",
    "quiet_hours_end": "08:00",
    "max_reminders_per_day": 5,
    "reminder_lead_time_minutes": 30,
    "preferred_reminder_times": ["09:00", "13:00", "17:00"],
    "weekend_reminders": False,
    "high_priority_override": True,
}


def visible_clause(now: datetime):
    """SQL form of the visibility predicate in scheduling.is_visible"""
    return and_(
        Reminder.dismissed_at.is_(None),
        or_(
            and_(Reminder.scheduled_for <= now, Reminder.snoozed_until.is_(None)),
            and_(Reminder.snoozed_until.is_not(None), Reminder.snoozed_until <= now),
        ),
    )


def priority_rank_expr():
    return case(PRIORITY_RANK, value=Reminder.priority, else_=DEFAULT_PRIORITY_RANK)


def create_reminder(db: Session, data: ReminderCreate) -> Reminder:
    reminder = Reminder(
        user_id=data.user_id,
        task_id=data.task_id,
        reminder_type=data.reminder_type,
        title=data.title,
        message=data.message,
        priority=data.priority,
        scheduled_for=to_utc_aware(data.scheduled_for),
    )
    db.add(reminder)
    db.commit()
    db.refresh(reminder)
    return reminder


def get_owned_reminder(db: Session, owner: str, reminder_id: UUID) -> Optional[Reminder]:
    stmt = select(Reminder).where(Reminder.id == reminder_id, Reminder.user_id == owner)
    return db.execute(stmt).unique().scalar_one_or_none()


def list_visible_reminders(db: Session, owner: str, now: datetime, limit: int = 20) -> List[Reminder]:
    stmt = (
        select(Reminder)
        .where(Reminder.user_id == owner)
        .where(visible_clause(now))
        .order_by(priority_rank_expr().asc(), Reminder.scheduled_for.asc(), Reminder.id.asc())
        .limit(limit)
    )
    return list(db.execute(stmt).unique().scalars())


def mark_delivered(db: Session, reminder_ids: Iterable[UUID], now: datetime) -> int:
    """Set delivered_at on rows that are still undelivered and not dismissed. Does not commit."""
    ids = list(reminder_ids)
    if not ids:
        return 0
    result = db.execute(
        update(Reminder)
        .where(
            Reminder.id.in_(ids),
            Reminder.delivered_at.is_(None),
            Reminder.dismissed_at.is_(None),
        )
        .values(delivered_at=now)
        .execution_options(synchronize_session="fetch")
    )
    return result.rowcount or 0


def _update_open_reminder(db: Session, owner: str, reminder_id: UUID, *criteria, **values) -> int:
    # dismissed rows never match; a dismissed reminder is never written again
    result = db.execute(
        update(Reminder)
        .where(
            Reminder.id == reminder_id,
            Reminder.user_id == owner,
            Reminder.dismissed_at.is_(None),
            *criteria,
        )
        .values(**values)
        .execution_options(synchronize_session="fetch")
    )
    return result.rowcount or 0


def set_read(db: Session, owner: str, reminder_id: UUID, now: datetime) -> int:
    """Returns 0 when the reminder is dismissed or already read."""
    return _update_open_reminder(db, owner, reminder_id, Reminder.read_at.is_(None), read_at=now)


def set_dismissed(db: Session, owner: str, reminder_id: UUID, now: datetime) -> int:
    return _update_open_reminder(db, owner, reminder_id, dismissed_at=now)


def set_snoozed(db: Session, owner: str, reminder_id: UUID, snoozed_until: datetime) -> int:
    # delivered_at is cleared so the reminder is delivered again once the snooze elapses
    return _update_open_reminder(
        db, owner, reminder_id, snoozed_until=snoozed_until, delivered_at=None
    )


def dismiss_all(db: Session, owner: str, now: datetime) -> int:
    """Dismiss every non-dismissed reminder of `owner`. Does not commit."""
    result = db.execute(
        update(Reminder)
        .where(Reminder.user_id == owner, Reminder.dismissed_at.is_(None))
        .values(dismissed_at=now)
        .execution_options(synchronize_session="fetch")
    )
    return result.rowcount or 0


def get_preferences(db: Session, owner: str) -> Optional[ReminderPreferences]:
    return db.get(ReminderPreferences, owner)


def create_default_preferences(db: Session, owner: str, now: datetime) -> ReminderPreferences:
    prefs = ReminderPreferences(
        user_id=owner,
        created_at=now,
        updated_at=now,
        **{**DEFAULT_PREFERENCES, "preferred_reminder_times": list(DEFAULT_PREFERENCES["preferred_reminder_times"])},
    )
    db.add(prefs)
    db.commit()
    db.refresh(prefs)
    return prefs


def update_preferences(db: Session, prefs: ReminderPreferences, updates: Dict, now: datetime) -> ReminderPreferences:
    for field, value in updates.items():
        setattr(prefs, field, value)
    prefs.updated_at = now
    db.add(prefs)
    db.commit()
    db.refresh(prefs)
    return prefs
