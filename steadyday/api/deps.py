from typing import Callable, Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from steadyday.core.clock import ClockService, clock as default_clock
from steadyday.core.errors import RateLimitedError, UnauthorizedError
from steadyday.core.rate_limiter import RateLimiterRegistry
from steadyday.db.session import get_db
from steadyday.reminders.preferences import ReminderPreferencesService
from steadyday.reminders.service import ReminderScheduler


def get_clock() -> ClockService:
    return default_clock


def get_rate_limiters(request: Request) -> RateLimiterRegistry:
    """The process-wide registry built in the application lifespan"""
    return request.app.state.rate_limiters


def get_current_owner(x_user_id: Optional[str] = Header(None)) -> str:
    """
    Owner id forwarded by the upstream auth gateway. Authentication itself
    happens before the request reaches this service.
    """
    if not x_user_id or not x_user_id.strip():
        raise UnauthorizedError()
    return x_user_id.strip()


def rate_limit_key(request: Request) -> Optional[str]:
    """Prefer the authenticated owner id, fall back to the client address"""
    owner = request.headers.get("x-user-id")
    if owner and owner.strip():
        return f"user:{owner.strip()}"
    if request.client and request.client.host:
        return f"ip:{request.client.host}"
    return None


def rate_limit(policy: str) -> Callable:
    """Dependency factory rejecting requests over the `policy` quota"""

    def _check(
        request: Request,
        limiters: RateLimiterRegistry = Depends(get_rate_limiters),
    ) -> None:
        if limiters.get(policy).is_limited(rate_limit_key(request)):
            raise RateLimitedError(policy)

    return _check


def get_reminder_scheduler(
    db: Session = Depends(get_db),
    clock: ClockService = Depends(get_clock),
) -> ReminderScheduler:
    return ReminderScheduler(db, clock)


def get_preferences_service(
    db: Session = Depends(get_db),
    clock: ClockService = Depends(get_clock),
) -> ReminderPreferencesService:
    return ReminderPreferencesService(db, clock)
