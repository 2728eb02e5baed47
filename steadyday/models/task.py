"""
Read-side mirror of the task subsystem's tables.

Tasks and categories are owned upstream; the reminder core only joins their
display fields onto reminders.
"""
import uuid
from sqlalchemy import Column, String, Date, Time, Boolean, Integer, ForeignKey, Uuid
from sqlalchemy.orm import relationship

from steadyday.db.base import Base
from steadyday.db.types import UTCDateTime
from steadyday.utils.timezone import utc_now


class Category(Base):
    __tablename__ = "categories"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    color = Column(String, nullable=True)
    icon = Column(String, nullable=True)


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    status = Column(String, nullable=False, default="todo")
    due_date = Column(Date, nullable=True)
    due_time = Column(Time, nullable=True)
    priority = Column(String, nullable=True)
    is_recurring = Column(Boolean, nullable=False, default=False)
    recurring_streak = Column(Integer, nullable=False, default=0)
    category_id = Column(Uuid, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(UTCDateTime, default=utc_now, nullable=False)

    category = relationship("Category", lazy="joined")
