"""Row edit state for the weekly grid.

At most one existing entry is being edited at a time; beginning to edit
another row abandons the first. Drafting a brand-new entry is a separate slot
that does not interfere with row editing.
"""

from __future__ import annotations

from datetime import date
from enum import Enum

from ..core.errors import TrackerError
from ..schemas.time_entry import TimeEntryDraft, TimeEntryOut, TimeEntryUpdate
from .lifecycle import EntryLifecycleManager
from .timecalc import parse_day


class RowState(str, Enum):
    VIEWING = "viewing"
    EDITING = "editing"
    SAVING = "saving"


class EntryEditor:
    def __init__(self, lifecycle: EntryLifecycleManager) -> None:
        self.lifecycle = lifecycle
        self.editing_id: str | None = None
        self.saving = False
        self.new_entry: TimeEntryDraft | None = None
        self.error: TrackerError | None = None

    def state_of(self, entry_id: str) -> RowState:
        if entry_id != self.editing_id:
            return RowState.VIEWING
        return RowState.SAVING if self.saving else RowState.EDITING

    def begin_edit(self, entry_id: str) -> None:
        self.editing_id = entry_id
        self.saving = False
        self.error = None

    def cancel_edit(self) -> None:
        self.editing_id = None
        self.saving = False
        self.error = None

    async def save_edit(self, draft: TimeEntryUpdate) -> TimeEntryOut | None:
        """Save the row being edited; on failure the row stays in editing."""

        if self.editing_id is None:
            return None
        self.saving = True
        try:
            entry = await self.lifecycle.update_time_entry(self.editing_id, draft)
        except TrackerError as exc:
            self.error = exc
            return None
        finally:
            self.saving = False
        self.editing_id = None
        self.error = None
        return entry

    def start_new_entry(self, day: date | str) -> TimeEntryDraft:
        self.new_entry = TimeEntryDraft(date=parse_day(day).isoformat())
        return self.new_entry

    def discard_new_entry(self) -> None:
        self.new_entry = None

    async def save_new_entry(self, draft: TimeEntryDraft | None = None) -> TimeEntryOut | None:
        draft = draft or self.new_entry
        if draft is None:
            return None
        self.new_entry = draft
        try:
            entry = await self.lifecycle.create_time_entry(draft)
        except TrackerError as exc:
            self.error = exc
            return None
        self.new_entry = None
        self.error = None
        return entry
