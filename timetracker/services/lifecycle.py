"""Validated writes for time entries, projects and tasks.

Each write validates first (nothing reaches the gateway when a required field
is missing), persists through the gateway, then awaits ``on_change`` so the
owning view re-reads its collections. A gateway failure raises the
``WriteFailed`` subclass matching the operation and leaves views untouched.
Time entries can only be changed or removed by the user who logged them.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Awaitable, Callable

from ..core.errors import (
    ConfirmationRequired,
    CreateFailed,
    DeleteFailed,
    UpdateFailed,
    ValidationFailed,
    WriteFailed,
)
from ..schemas.auth import UserOut
from ..schemas.project import ProjectDraft, ProjectOut, TaskDraft, TaskOut, TaskUpdate
from ..schemas.time_entry import TimeEntryDraft, TimeEntryOut, TimeEntryUpdate
from .gateway import DataGateway, GatewayResult
from .timecalc import compute_hours, parse_clock, parse_day

logger = logging.getLogger(__name__)

ChangeHook = Callable[[], Awaitable[Any]]


def _missing(values: dict[str, str | None]) -> list[str]:
    return [field for field, value in values.items() if not (value or "").strip()]


def _hours(start_time: str, end_time: str) -> float:
    invalid = []
    for field, value in (("start_time", start_time), ("end_time", end_time)):
        try:
            parse_clock(value)
        except ValueError:
            invalid.append(field)
    if invalid:
        raise ValidationFailed(invalid, f"Invalid time for: {', '.join(invalid)} (expected HH:MM)")
    hours = compute_hours(start_time, end_time)
    if hours <= 0:
        raise ValidationFailed(["end_time"], "End time must be after start time")
    return hours


class EntryLifecycleManager:
    def __init__(
        self,
        gateway: DataGateway,
        user: UserOut,
        *,
        on_change: ChangeHook | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.gateway = gateway
        self.user = user
        self.on_change = on_change
        self._today = today

    async def _changed(self) -> None:
        if self.on_change is not None:
            await self.on_change()

    def _check(self, result: GatewayResult, error: type[WriteFailed], entity: str, **context: Any) -> Any:
        if not result.ok:
            logger.warning(
                "lifecycle.%s_failed",
                error.code,
                extra={"extra_data": {"entity": entity, "error": result.error, **context}},
            )
            raise error(entity, details=result.error)
        return result.data

    async def _check_task_project(self, task_id: str | None, project_id: str) -> None:
        if not task_id:
            return
        result = await self.gateway.table("tasks").select().eq("id", task_id).single().execute()
        if not result.ok:
            raise ValidationFailed(["task_id"], "Selected task no longer exists")
        if result.data["project_id"] != project_id:
            raise ValidationFailed(["task_id"], "Task does not belong to the selected project")

    async def _check_owner(self, entry_id: str, error: type[WriteFailed]) -> None:
        result = await (
            self.gateway.table("time_entries")
            .select()
            .eq("id", entry_id)
            .eq("user_id", self.user.id)
            .single()
            .execute()
        )
        self._check(result, error, "time entry", id=entry_id)

    # ---- time entries

    async def create_time_entry(self, draft: TimeEntryDraft) -> TimeEntryOut:
        missing = _missing(
            {
                "date": draft.date,
                "project_id": draft.project_id,
                "start_time": draft.start_time,
                "end_time": draft.end_time,
            }
        )
        if missing:
            raise ValidationFailed(missing)
        try:
            entry_date = parse_day(draft.date)
        except ValueError:
            raise ValidationFailed(["date"], "Invalid date (expected YYYY-MM-DD)") from None
        hours = _hours(draft.start_time, draft.end_time)
        task_id = draft.task_id or None
        await self._check_task_project(task_id, draft.project_id)
        result = await self.gateway.insert(
            "time_entries",
            {
                "user_id": self.user.id,
                "project_id": draft.project_id,
                "task_id": task_id,
                "date": entry_date.isoformat(),
                "start_time": draft.start_time,
                "end_time": draft.end_time,
                "hours": hours,
                "description": draft.description or "",
            },
        )
        record = self._check(result, CreateFailed, "time entry")
        await self._changed()
        return TimeEntryOut.model_validate(record)

    async def update_time_entry(self, entry_id: str, draft: TimeEntryUpdate | TimeEntryDraft) -> TimeEntryOut:
        # The date is fixed when the entry is created.
        missing = _missing(
            {
                "id": entry_id,
                "project_id": draft.project_id,
                "start_time": draft.start_time,
                "end_time": draft.end_time,
            }
        )
        if missing:
            raise ValidationFailed(missing)
        hours = _hours(draft.start_time, draft.end_time)
        task_id = draft.task_id or None
        await self._check_owner(entry_id, UpdateFailed)
        await self._check_task_project(task_id, draft.project_id)
        result = await self.gateway.update(
            "time_entries",
            entry_id,
            {
                "project_id": draft.project_id,
                "task_id": task_id,
                "start_time": draft.start_time,
                "end_time": draft.end_time,
                "hours": hours,
                "description": draft.description or "",
            },
        )
        record = self._check(result, UpdateFailed, "time entry", id=entry_id)
        await self._changed()
        return TimeEntryOut.model_validate(record)

    async def delete_time_entry(self, entry_id: str) -> None:
        if not (entry_id or "").strip():
            raise ValidationFailed(["id"])
        await self._check_owner(entry_id, DeleteFailed)
        result = await self.gateway.delete("time_entries", entry_id)
        self._check(result, DeleteFailed, "time entry", id=entry_id)
        await self._changed()

    # ---- projects

    def _project_values(self, draft: ProjectDraft) -> dict[str, Any]:
        missing = _missing({"name": draft.name, "client": draft.client})
        if missing:
            raise ValidationFailed(missing)
        values: dict[str, Any] = {
            "name": draft.name.strip(),
            "client": draft.client.strip(),
            "description": draft.description or "",
        }
        if draft.start_date:
            try:
                values["start_date"] = parse_day(draft.start_date).isoformat()
            except ValueError:
                raise ValidationFailed(["start_date"], "Invalid start date (expected YYYY-MM-DD)") from None
        return values

    async def create_project(self, draft: ProjectDraft) -> ProjectOut:
        values = self._project_values(draft)
        values.setdefault("start_date", self._today().isoformat())
        result = await self.gateway.insert("projects", values)
        record = self._check(result, CreateFailed, "project")
        await self._changed()
        return ProjectOut.model_validate(record)

    async def update_project(self, project_id: str, draft: ProjectDraft) -> ProjectOut:
        if not (project_id or "").strip():
            raise ValidationFailed(["id"])
        values = self._project_values(draft)
        result = await self.gateway.update("projects", project_id, values)
        record = self._check(result, UpdateFailed, "project", id=project_id)
        await self._changed()
        return ProjectOut.model_validate(record)

    async def delete_project(self, project_id: str, *, confirmed: bool = False) -> None:
        """Delete a project together with its tasks and time entries."""

        if not confirmed:
            raise ConfirmationRequired("project")
        result = await self.gateway.delete("projects", project_id)
        self._check(result, DeleteFailed, "project", id=project_id)
        await self._changed()

    # ---- tasks

    async def create_task(self, draft: TaskDraft) -> TaskOut:
        missing = _missing({"project_id": draft.project_id, "name": draft.name})
        if missing:
            raise ValidationFailed(missing)
        result = await self.gateway.insert(
            "tasks",
            {
                "project_id": draft.project_id,
                "name": draft.name.strip(),
                "description": draft.description or "",
                "metadata": dict(draft.metadata or {}),
            },
        )
        record = self._check(result, CreateFailed, "task")
        await self._changed()
        return TaskOut.model_validate(record)

    async def update_task(self, task_id: str, draft: TaskUpdate) -> TaskOut:
        missing = _missing({"id": task_id, "name": draft.name})
        if missing:
            raise ValidationFailed(missing)
        result = await self.gateway.update(
            "tasks",
            task_id,
            {
                "name": draft.name.strip(),
                "description": draft.description or "",
                "metadata": dict(draft.metadata or {}),
            },
        )
        record = self._check(result, UpdateFailed, "task", id=task_id)
        await self._changed()
        return TaskOut.model_validate(record)

    async def delete_task(self, task_id: str, *, confirmed: bool = False) -> None:
        """Delete a task together with the time entries logged against it."""

        if not confirmed:
            raise ConfirmationRequired("task")
        result = await self.gateway.delete("tasks", task_id)
        self._check(result, DeleteFailed, "task", id=task_id)
        await self._changed()
