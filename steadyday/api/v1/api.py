from fastapi import APIRouter

from steadyday.api.v1.endpoints import reminders

api_router = APIRouter()

api_router.include_router(reminders.router, prefix="/reminders", tags=["reminders"])
