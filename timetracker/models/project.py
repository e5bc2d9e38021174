"""Client projects that group tasks and time entries."""

from __future__ import annotations

from sqlalchemy import Column, String, Text
from sqlalchemy.orm import relationship

from ..db.session import Base
from ._columns import new_id, utcnow


class Project(Base):
    __tablename__ = "projects"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(Text, nullable=False)
    client = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    start_date = Column(Text, nullable=False)
    created_at = Column(Text, nullable=False, default=utcnow)
    updated_at = Column(Text, nullable=False, default=utcnow)

    # Deleting a project removes its tasks and every entry logged against it.
    tasks = relationship("Task", back_populates="project", cascade="all")
    time_entries = relationship("TimeEntry", back_populates="project", cascade="all")


__all__ = ["Project"]
