"""Pydantic schemas for time entries and the weekly grid."""

from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field

from .project import ProjectOut, TaskOut


class TimeEntryDraft(BaseModel):
    """Editable fields of an entry, as held by the entry form."""

    date: str = ""
    project_id: str = ""
    task_id: str = ""
    start_time: str = "09:00"
    end_time: str = "10:00"
    description: str = ""


class TimeEntryUpdate(BaseModel):
    project_id: str = ""
    task_id: str = ""
    start_time: str = ""
    end_time: str = ""
    description: str = ""


class TimeEntryOut(BaseModel):
    id: str
    user_id: str
    project_id: str
    task_id: Optional[str] = None
    date: str
    start_time: str
    end_time: str
    hours: float
    description: str = ""
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    project: Optional[ProjectOut] = None
    task: Optional[TaskOut] = None


class DayOut(BaseModel):
    date: date
    total_hours: float
    entries: list[TimeEntryOut] = Field(default_factory=list)


class WeekOut(BaseModel):
    week_start: date
    week_end: date
    days: list[DayOut]
    projects: list[ProjectOut] = Field(default_factory=list)
    tasks: list[TaskOut] = Field(default_factory=list)
    error: Optional[str] = None
