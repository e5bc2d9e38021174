"""The selected week and everything shown in its grid.

A refresh re-reads three collections: every project, every task (both feed
the entry form's dropdowns) and the signed-in user's entries inside the
Monday-Sunday range. Each refresh is stamped with a generation number, and
moving to another week or starting a newer refresh bumps it. A refresh that
completes under an older generation is dropped.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable

from pydantic import ValidationError

from ..core.errors import FetchFailed
from ..schemas.auth import UserOut
from ..schemas.project import ProjectOut, TaskOut
from ..schemas.time_entry import DayOut, TimeEntryOut, WeekOut
from .gateway import DataGateway
from .timecalc import parse_day, shift_weeks, week_days, week_end, week_start

logger = logging.getLogger(__name__)


class WeekViewModel:
    def __init__(
        self,
        gateway: DataGateway,
        user: UserOut,
        reference: date | str | None = None,
        *,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.gateway = gateway
        self.user = user
        self.reference_date = parse_day(reference) if reference else today()
        self.entries: list[TimeEntryOut] = []
        self.projects: list[ProjectOut] = []
        self.tasks: list[TaskOut] = []
        self.loading = False
        self.error: FetchFailed | None = None
        self.fetch_count = 0
        self._generation = 0

    @property
    def week_start(self) -> date:
        return week_start(self.reference_date)

    @property
    def week_end(self) -> date:
        return week_end(self.reference_date)

    @property
    def week_days(self) -> list[date]:
        return week_days(self.reference_date)

    def _select(self, reference: date) -> date:
        if week_start(reference) != self.week_start:
            # Anything still in flight belongs to the week being left.
            self._generation += 1
            self.loading = False
        self.reference_date = reference
        return reference

    def next_week(self) -> date:
        return self._select(shift_weeks(self.reference_date, 1))

    def previous_week(self) -> date:
        return self._select(shift_weeks(self.reference_date, -1))

    def go_to(self, reference: date | str) -> date:
        return self._select(parse_day(reference))

    async def refresh(self) -> bool:
        """Re-read projects, tasks and this week's entries.

        Returns True when the result was applied. On failure the previous
        collections stay in place and ``error`` holds a ``FetchFailed``.
        """

        self._generation += 1
        generation = self._generation
        start, end = self.week_start, self.week_end
        self.loading = True
        self.fetch_count += 1
        try:
            projects, tasks, entries = await self._fetch(start, end)
        except FetchFailed as exc:
            if generation != self._generation:
                return False
            logger.warning(
                "week.fetch_failed",
                extra={"extra_data": {"week_start": start.isoformat(), "error": str(exc.details)}},
            )
            self.error = exc
            self.loading = False
            return False
        if generation != self._generation or start != self.week_start:
            logger.info(
                "week.stale_response_dropped",
                extra={"extra_data": {"week_start": start.isoformat(), "generation": generation}},
            )
            return False
        self.projects, self.tasks, self.entries = projects, tasks, entries
        self.error = None
        self.loading = False
        return True

    async def _fetch(self, start: date, end: date) -> tuple[list[ProjectOut], list[TaskOut], list[TimeEntryOut]]:
        projects = await self.gateway.table("projects").select().order("name").execute()
        if not projects.ok:
            raise FetchFailed(details=projects.error)
        tasks = await self.gateway.table("tasks").select().order("name").execute()
        if not tasks.ok:
            raise FetchFailed(details=tasks.error)
        entries = await (
            self.gateway.table("time_entries")
            .select("project", "task")
            .eq("user_id", self.user.id)
            .gte("date", start)
            .lte("date", end)
            .order("date")
            .order("start_time")
            .execute()
        )
        if not entries.ok:
            raise FetchFailed(details=entries.error)
        try:
            return (
                [ProjectOut.model_validate(row) for row in projects.data],
                [TaskOut.model_validate(row) for row in tasks.data],
                [TimeEntryOut.model_validate(row) for row in entries.data],
            )
        except ValidationError as exc:
            raise FetchFailed(details=str(exc)) from exc

    def entries_for_day(self, day: date | str) -> list[TimeEntryOut]:
        key = parse_day(day).isoformat()
        return [entry for entry in self.entries if entry.date == key]

    def total_hours_for_day(self, day: date | str) -> float:
        return sum((entry.hours for entry in self.entries_for_day(day)), 0.0)

    def total_hours_for_week(self) -> float:
        return sum((self.total_hours_for_day(day) for day in self.week_days), 0.0)

    def tasks_for_project(self, project_id: str) -> list[TaskOut]:
        return [task for task in self.tasks if task.project_id == project_id]

    def snapshot(self) -> WeekOut:
        return WeekOut(
            week_start=self.week_start,
            week_end=self.week_end,
            days=[
                DayOut(date=day, total_hours=self.total_hours_for_day(day), entries=self.entries_for_day(day))
                for day in self.week_days
            ],
            projects=self.projects,
            tasks=self.tasks,
            error=self.error.message if self.error else None,
        )
