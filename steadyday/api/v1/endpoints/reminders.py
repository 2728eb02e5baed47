from uuid import UUID

from fastapi import APIRouter, Depends

from steadyday.api import deps
from steadyday.reminders.config import settings as reminder_settings
from steadyday.reminders.preferences import ReminderPreferencesService
from steadyday.reminders.schemas import (
    ActionResult,
    DismissAllResult,
    ReminderList,
    ReminderPreferencesRead,
    ReminderPreferencesUpdate,
    ReminderRead,
    SnoozeRequest,
    SnoozeResult,
)
from steadyday.reminders.service import ReminderScheduler


router = APIRouter(dependencies=[Depends(deps.rate_limit(reminder_settings.RATE_LIMIT_POLICY))])


@router.get("", response_model=ReminderList)
def list_reminders(
    owner: str = Depends(deps.get_current_owner),
    scheduler: ReminderScheduler = Depends(deps.get_reminder_scheduler),
):
    """Reminders visible right now; undelivered ones are marked delivered by this call."""
    visible = scheduler.list_visible(owner)
    return ReminderList(
        reminders=[ReminderRead.model_validate(r) for r in visible.reminders],
        unread_count=visible.unread_count,
    )


@router.delete("", response_model=DismissAllResult)
def clear_reminders(
    owner: str = Depends(deps.get_current_owner),
    scheduler: ReminderScheduler = Depends(deps.get_reminder_scheduler),
):
    dismissed = scheduler.dismiss_all(owner)
    return DismissAllResult(message="All reminders cleared.", dismissed=dismissed)


@router.get("/preferences", response_model=ReminderPreferencesRead)
def get_preferences(
    owner: str = Depends(deps.get_current_owner),
    service: ReminderPreferencesService = Depends(deps.get_preferences_service),
):
    return service.get_or_create(owner)


@router.put("/preferences", response_model=ReminderPreferencesRead)
def update_preferences(
    payload: ReminderPreferencesUpdate,
    owner: str = Depends(deps.get_current_owner),
    service: ReminderPreferencesService = Depends(deps.get_preferences_service),
):
    return service.update(owner, payload)


@router.post("/{reminder_id}/read", response_model=ActionResult)
def mark_reminder_read(
    reminder_id: UUID,
    owner: str = Depends(deps.get_current_owner),
    scheduler: ReminderScheduler = Depends(deps.get_reminder_scheduler),
):
    scheduler.mark_read(owner, reminder_id)
    return ActionResult()


@router.post("/{reminder_id}/dismiss", response_model=ActionResult)
def dismiss_reminder(
    reminder_id: UUID,
    owner: str = Depends(deps.get_current_owner),
    scheduler: ReminderScheduler = Depends(deps.get_reminder_scheduler),
):
    scheduler.dismiss(owner, reminder_id)
    return ActionResult()


@router.post("/{reminder_id}/snooze", response_model=SnoozeResult)
def snooze_reminder(
    reminder_id: UUID,
    payload: SnoozeRequest,
    owner: str = Depends(deps.get_current_owner),
    scheduler: ReminderScheduler = Depends(deps.get_reminder_scheduler),
):
    reminder = scheduler.snooze(owner, reminder_id, payload.duration)
    return SnoozeResult(snoozed_until=reminder.snoozed_until)
