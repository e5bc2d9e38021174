"""Hours a user logged against a project (and optionally a task) on one day."""

from __future__ import annotations

from sqlalchemy import Column, Float, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from ..db.session import Base
from ._columns import new_id, utcnow


class TimeEntry(Base):
    __tablename__ = "time_entries"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    task_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=True, index=True)
    date = Column(Text, nullable=False, index=True)  # YYYY-MM-DD
    start_time = Column(Text, nullable=False)  # HH:MM
    end_time = Column(Text, nullable=False)
    hours = Column(Float, nullable=False, default=0.0)
    description = Column(Text, nullable=False, default="")
    created_at = Column(Text, nullable=False, default=utcnow)
    updated_at = Column(Text, nullable=False, default=utcnow)

    project = relationship("Project", back_populates="time_entries")
    task = relationship("Task", back_populates="time_entries")


__all__ = ["TimeEntry"]
