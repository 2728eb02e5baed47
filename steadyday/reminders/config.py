from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional


class ReminderSettings(BaseSettings):
    # Maximum reminders returned by a single visible-list call
    PAGE_SIZE: int = Field(default=20, ge=1, le=200)

    # Overrides DEFAULT_TIMEZONE for snooze wall-clock targets
    LOCAL_TIMEZONE: Optional[str] = None

    # Name of the rate limit policy guarding the reminder endpoints
    RATE_LIMIT_POLICY: str = "reminders"

    class Config:
        env_prefix = "REMINDER_"


settings = ReminderSettings()
