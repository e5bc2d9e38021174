from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query, Request

from ..core.roles import Capability
from ..deps.auth import get_gateway, require_api_key, require_capability
from ..schemas.auth import UserOut
from ..schemas.time_entry import TimeEntryDraft, TimeEntryUpdate, WeekOut
from ..services.gateway import DataGateway
from ..services.lifecycle import EntryLifecycleManager
from ..services.timecalc import today_in
from ..services.week_view import WeekViewModel

router = APIRouter(prefix="/api/v1", tags=["time-tracking"], dependencies=[Depends(require_api_key)])
tracking_user = require_capability(Capability.TIME_TRACKING)


def _week_view(request: Request, gateway: DataGateway, user: UserOut, reference: date | None) -> WeekViewModel:
    tz = request.app.state.settings.TZ
    return WeekViewModel(gateway, user, reference, today=lambda: today_in(tz))


@router.get("/week", response_model=WeekOut)
async def api_get_week(
    request: Request,
    day: date | None = Query(default=None, alias="date"),
    gateway: DataGateway = Depends(get_gateway),
    user: UserOut = Depends(tracking_user),
):
    view = _week_view(request, gateway, user, day)
    if not await view.refresh():
        raise view.error
    return view.snapshot()


@router.post("/time-entries", response_model=WeekOut, status_code=201)
async def api_create_time_entry(
    request: Request,
    payload: TimeEntryDraft,
    gateway: DataGateway = Depends(get_gateway),
    user: UserOut = Depends(tracking_user),
):
    view = _week_view(request, gateway, user, None)

    async def show_entry_week() -> None:
        view.go_to(payload.date)
        await view.refresh()

    await EntryLifecycleManager(gateway, user, on_change=show_entry_week).create_time_entry(payload)
    return view.snapshot()


@router.patch("/time-entries/{entry_id}", response_model=WeekOut)
async def api_update_time_entry(
    request: Request,
    entry_id: str,
    payload: TimeEntryUpdate,
    week: date | None = Query(default=None),
    gateway: DataGateway = Depends(get_gateway),
    user: UserOut = Depends(tracking_user),
):
    view = _week_view(request, gateway, user, week)
    await EntryLifecycleManager(gateway, user, on_change=view.refresh).update_time_entry(entry_id, payload)
    return view.snapshot()


@router.delete("/time-entries/{entry_id}", response_model=WeekOut)
async def api_delete_time_entry(
    request: Request,
    entry_id: str,
    week: date | None = Query(default=None),
    gateway: DataGateway = Depends(get_gateway),
    user: UserOut = Depends(tracking_user),
):
    view = _week_view(request, gateway, user, week)
    await EntryLifecycleManager(gateway, user, on_change=view.refresh).delete_time_entry(entry_id)
    return view.snapshot()
