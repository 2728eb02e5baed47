"""
Request/response schemas for the reminder endpoints
"""
import re
from datetime import date, datetime, time
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


ReminderPriority = Literal["gentle", "normal", "important"]
ReminderType = Literal["due_soon", "overdue", "priority_nudge", "recurring_due", "suggestion_follow_up"]

HHMM_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
ALLOWED_LEAD_TIMES = (15, 30, 60, 120)
MAX_PREFERRED_TIMES = 3


class CategoryRef(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    color: Optional[str] = None
    icon: Optional[str] = None


class TaskRef(BaseModel):
    """Denormalized task display fields joined onto a reminder"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    status: str
    due_date: Optional[date] = None
    due_time: Optional[time] = None
    priority: Optional[str] = None
    is_recurring: bool = False
    recurring_streak: int = 0
    category: Optional[CategoryRef] = None


class ReminderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: str
    task_id: Optional[UUID] = None
    reminder_type: str
    title: str
    message: str
    priority: str
    scheduled_for: datetime
    delivered_at: Optional[datetime] = None
    read_at: Optional[datetime] = None
    snoozed_until: Optional[datetime] = None
    dismissed_at: Optional[datetime] = None
    created_at: datetime
    task: Optional[TaskRef] = None


class ReminderList(BaseModel):
    reminders: List[ReminderRead]
    unread_count: int


class ReminderCreate(BaseModel):
    """Insert payload used by upstream producers (task subsystem)"""
    user_id: str
    title: str
    message: str = ""
    scheduled_for: datetime
    reminder_type: ReminderType = "due_soon"
    priority: ReminderPriority = "normal"
    task_id: Optional[UUID] = None


class SnoozeRequest(BaseModel):
    # validated by the scheduler so unknown values get the same error everywhere
    duration: str


class SnoozeResult(BaseModel):
    success: bool = True
    snoozed_until: datetime


class ActionResult(BaseModel):
    success: bool = True
    message: Optional[str] = None


class DismissAllResult(ActionResult):
    dismissed: int = 0


class ReminderPreferencesRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    reminders_enabled: bool
    quiet_hours_start: Optional[str] = None
    quiet_hours_end: Optional[str] = None
    max_reminders_per_day: int
    reminder_lead_time_minutes: int
    preferred_reminder_times: List[str]
    weekend_reminders: bool
    high_priority_override: bool
    created_at: datetime
    updated_at: datetime


class ReminderPreferencesUpdate(BaseModel):
    """Partial update; omitted fields keep their stored value"""
    reminders_enabled: Optional[bool] = None
    quiet_hours_start: Optional[str] = None
    quiet_hours_end: Optional[str] = None
    max_reminders_per_day: Optional[int] = Field(default=None, ge=1, le=15)
    reminder_lead_time_minutes: Optional[int] = None
    preferred_reminder_times: Optional[List[str]] = None
    weekend_reminders: Optional[bool] = None
    high_priority_override: Optional[bool] = None

    @field_validator("quiet_hours_start", "quiet_hours_end")
    @classmethod
    def validate_clock_time(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not HHMM_PATTERN.match(v):
            raise ValueError("Times must use HH:MM format.")
        return v

    @field_validator("preferred_reminder_times")
    @classmethod
    def validate_preferred_times(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        if len(v) > MAX_PREFERRED_TIMES:
            raise ValueError(f"Maximum {MAX_PREFERRED_TIMES} preferred reminder times.")
        for item in v:
            if not HHMM_PATTERN.match(item):
                raise ValueError("Times must use HH:MM format.")
        return v

    @field_validator("reminder_lead_time_minutes")
    @classmethod
    def validate_lead_time(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v not in ALLOWED_LEAD_TIMES:
            raise ValueError("Invalid lead time.")
        return v
