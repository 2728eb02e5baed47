import logging
from typing import Optional

from sqlalchemy.orm import Session

from steadyday.core.clock import ClockService
from . import repository
from .models import ReminderPreferences
from .schemas import ReminderPreferencesUpdate

logger = logging.getLogger(__name__)

# Preference fields a client may clear by sending null
CLEARABLE_FIELDS = {"quiet_hours_start", "quiet_hours_end"}


class ReminderPreferencesService:
    """Per-user reminder preferences; a default row is created on first access"""

    def __init__(self, db: Session, clock: ClockService):
        self.db = db
        self.clock = clock

    def get_or_create(self, owner: str) -> ReminderPreferences:
        prefs: Optional[ReminderPreferences] = repository.get_preferences(self.db, owner)
        if prefs is not None:
            return prefs
        try:
            prefs = repository.create_default_preferences(self.db, owner, self.clock.now())
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"Created default reminder preferences for user {owner}")
        return prefs

    def update(self, owner: str, payload: ReminderPreferencesUpdate) -> ReminderPreferences:
        prefs = self.get_or_create(owner)
        updates = {
            field: value
            for field, value in payload.model_dump(exclude_unset=True).items()
            if value is not None or field in CLEARABLE_FIELDS
        }
        if not updates:
            return prefs
        try:
            return repository.update_preferences(self.db, prefs, updates, self.clock.now())
        except Exception:
            self.db.rollback()
            raise
