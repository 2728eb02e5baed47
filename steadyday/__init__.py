"""
SteadyDay reminder service package.

Reminder delivery (steadyday.reminders) and the per-endpoint request rate
limiter (steadyday.core.rate_limiter), served through the FastAPI app in
steadyday.main.
"""
