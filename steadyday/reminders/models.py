"""
Reminder and reminder-preference models
"""
import uuid
from sqlalchemy import Column, String, Boolean, Integer, ForeignKey, Index, JSON, Uuid, CheckConstraint
from sqlalchemy.orm import relationship

from steadyday.db.base import Base
from steadyday.db.types import UTCDateTime
from steadyday.utils.timezone import utc_now
from steadyday.models.task import Task  # noqa: F401  (registers the joined table)


REMINDER_PRIORITIES = ("gentle", "normal", "important")


class Reminder(Base):
    """In-app reminder for a task.

    Nullable timestamps encode the lifecycle: delivered_at (first surfaced),
    read_at (acknowledged), snoozed_until (suppressed until), dismissed_at
    (terminal).
    """
    __tablename__ = "reminders"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(String, nullable=False, index=True)
    task_id = Column(Uuid, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=True, index=True)
    reminder_type = Column(String, nullable=False, default="due_soon")
    title = Column(String, nullable=False)
    message = Column(String, nullable=False, default="")
    priority = Column(String, nullable=False, default="normal")  # gentle, normal, important

    scheduled_for = Column(UTCDateTime, nullable=False, index=True)
    delivered_at = Column(UTCDateTime, nullable=True)  # null = not yet delivered
    read_at = Column(UTCDateTime, nullable=True)
    snoozed_until = Column(UTCDateTime, nullable=True)
    dismissed_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, default=utc_now, nullable=False)

    task = relationship("Task", lazy="joined")

    __table_args__ = (
        CheckConstraint(
            "priority IN (%s)" % ", ".join(f"'{p}'" for p in REMINDER_PRIORITIES),
            name="ck_reminders_priority",
        ),
        Index("ix_reminders_user_delivery", "user_id", "delivered_at", "dismissed_at"),
        Index("ix_reminders_user_snoozed", "user_id", "snoozed_until"),
    )


class ReminderPreferences(Base):
    """One row per user"""
    __tablename__ = "reminder_preferences"

    user_id = Column(String, primary_key=True)
    reminders_enabled = Column(Boolean, nullable=False, default=True)
    quiet_hours_start = Column(String(5), nullable=True, default="22:00")  # don't remind after this
    quiet_hours_end = Column(String(5), nullable=True, default="08:00")    # don't remind before this
    max_reminders_per_day = Column(Integer, nullable=False, default=5)
    reminder_lead_time_minutes = Column(Integer, nullable=False, default=30)
    preferred_reminder_times = Column(JSON, nullable=False, default=lambda: ["09:00", "13:00", "17:00"])
    weekend_reminders = Column(Boolean, nullable=False, default=False)
    high_priority_override = Column(Boolean, nullable=False, default=True)
    created_at = Column(UTCDateTime, default=utc_now, nullable=False)
    updated_at = Column(UTCDateTime, default=utc_now, onupdate=utc_now, nullable=False)
