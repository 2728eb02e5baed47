"""
Errors raised by the reminder core.

The HTTP boundary maps each class onto a status code and a machine-readable
`code`; storage errors (SQLAlchemyError) are not wrapped and propagate as-is.
"""
from steadyday.core.errors import ApiError


class ReminderError(ApiError):
    pass


class ReminderNotFoundError(ReminderError):
    """Reminder does not exist or belongs to someone else"""
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, reminder_id):
        super().__init__("Reminder not found.")
        self.reminder_id = reminder_id


class InvalidReminderStateError(ReminderError):
    """Transition not allowed from the reminder's current state"""
    status_code = 409
    code = "CONFLICT"


class InvalidSnoozeDurationError(ReminderError):
    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(self, duration):
        super().__init__("Invalid snooze duration.")
        self.duration = duration
