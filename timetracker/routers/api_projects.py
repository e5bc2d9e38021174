from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request

from ..core.roles import Capability
from ..deps.auth import get_gateway, require_api_key, require_capability
from ..schemas.auth import UserOut
from ..schemas.project import ProjectDetail, ProjectDraft, TaskDraft, TaskUpdate
from ..services.gateway import DataGateway
from ..services.lifecycle import EntryLifecycleManager
from ..services.project_list import ProjectListModel
from ..services.timecalc import today_in

router = APIRouter(prefix="/api/v1", tags=["projects"], dependencies=[Depends(require_api_key)])
projects_user = require_capability(Capability.PROJECTS)


def _lifecycle(request: Request, gateway: DataGateway, user: UserOut, listing: ProjectListModel) -> EntryLifecycleManager:
    tz = request.app.state.settings.TZ
    return EntryLifecycleManager(gateway, user, on_change=listing.refresh, today=lambda: today_in(tz))


@router.get("/projects", response_model=list[ProjectDetail])
async def api_list_projects(gateway: DataGateway = Depends(get_gateway), user: UserOut = Depends(projects_user)):
    listing = ProjectListModel(gateway)
    if not await listing.refresh():
        raise listing.error
    return listing.details()


@router.post("/projects", response_model=list[ProjectDetail], status_code=201)
async def api_create_project(
    request: Request,
    payload: ProjectDraft,
    gateway: DataGateway = Depends(get_gateway),
    user: UserOut = Depends(projects_user),
):
    listing = ProjectListModel(gateway)
    await _lifecycle(request, gateway, user, listing).create_project(payload)
    return listing.details()


@router.patch("/projects/{project_id}", response_model=list[ProjectDetail])
async def api_update_project(
    request: Request,
    project_id: str,
    payload: ProjectDraft,
    gateway: DataGateway = Depends(get_gateway),
    user: UserOut = Depends(projects_user),
):
    listing = ProjectListModel(gateway)
    await _lifecycle(request, gateway, user, listing).update_project(project_id, payload)
    return listing.details()


@router.delete("/projects/{project_id}", response_model=list[ProjectDetail])
async def api_delete_project(
    request: Request,
    project_id: str,
    confirm: bool = Query(default=False),
    gateway: DataGateway = Depends(get_gateway),
    user: UserOut = Depends(projects_user),
):
    listing = ProjectListModel(gateway)
    await _lifecycle(request, gateway, user, listing).delete_project(project_id, confirmed=confirm)
    return listing.details()


@router.post("/projects/{project_id}/tasks", response_model=list[ProjectDetail], status_code=201)
async def api_create_task(
    request: Request,
    project_id: str,
    payload: TaskUpdate,
    gateway: DataGateway = Depends(get_gateway),
    user: UserOut = Depends(projects_user),
):
    listing = ProjectListModel(gateway)
    draft = TaskDraft(project_id=project_id, **payload.model_dump())
    await _lifecycle(request, gateway, user, listing).create_task(draft)
    return listing.details()


@router.patch("/tasks/{task_id}", response_model=list[ProjectDetail])
async def api_update_task(
    request: Request,
    task_id: str,
    payload: TaskUpdate,
    gateway: DataGateway = Depends(get_gateway),
    user: UserOut = Depends(projects_user),
):
    listing = ProjectListModel(gateway)
    await _lifecycle(request, gateway, user, listing).update_task(task_id, payload)
    return listing.details()


@router.delete("/tasks/{task_id}", response_model=list[ProjectDetail])
async def api_delete_task(
    request: Request,
    task_id: str,
    confirm: bool = Query(default=False),
    gateway: DataGateway = Depends(get_gateway),
    user: UserOut = Depends(projects_user),
):
    listing = ProjectListModel(gateway)
    await _lifecycle(request, gateway, user, listing).delete_task(task_id, confirmed=confirm)
    return listing.details()
