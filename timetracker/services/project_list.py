"""Projects view: every project with its tasks, newest first."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from ..core.errors import FetchFailed
from ..schemas.project import ProjectDetail, ProjectOut, TaskOut
from .gateway import DataGateway

logger = logging.getLogger(__name__)


class ProjectListModel:
    def __init__(self, gateway: DataGateway) -> None:
        self.gateway = gateway
        self.projects: list[ProjectOut] = []
        self.tasks: list[TaskOut] = []
        self.loading = False
        self.error: FetchFailed | None = None

    async def refresh(self) -> bool:
        self.loading = True
        try:
            projects = await self.gateway.table("projects").select().order("created_at", descending=True).execute()
            tasks = await self.gateway.table("tasks").select().order("created_at", descending=True).execute()
            for result in (projects, tasks):
                if not result.ok:
                    raise FetchFailed("Failed to load projects", details=result.error)
            try:
                self.projects = [ProjectOut.model_validate(row) for row in projects.data]
                self.tasks = [TaskOut.model_validate(row) for row in tasks.data]
            except ValidationError as exc:
                raise FetchFailed("Failed to load projects", details=str(exc)) from exc
        except FetchFailed as exc:
            logger.warning("projects.fetch_failed", extra={"extra_data": {"error": str(exc.details)}})
            self.error = exc
            return False
        finally:
            self.loading = False
        self.error = None
        return True

    def tasks_for_project(self, project_id: str) -> list[TaskOut]:
        return [task for task in self.tasks if task.project_id == project_id]

    def details(self) -> list[ProjectDetail]:
        return [
            ProjectDetail(**project.model_dump(), tasks=self.tasks_for_project(project.id))
            for project in self.projects
        ]
