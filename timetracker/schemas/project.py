"""Pydantic schemas for projects and their tasks."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class ProjectDraft(BaseModel):
    name: str = ""
    client: str = ""
    description: str = ""
    start_date: Optional[str] = None


class ProjectOut(BaseModel):
    id: str
    name: str
    client: str
    description: str = ""
    start_date: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class TaskDraft(BaseModel):
    project_id: str = ""
    name: str = ""
    description: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)


class TaskUpdate(BaseModel):
    name: str = ""
    description: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)


class TaskOut(BaseModel):
    id: str
    project_id: str
    name: str
    description: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class ProjectDetail(ProjectOut):
    tasks: list[TaskOut] = Field(default_factory=list)
