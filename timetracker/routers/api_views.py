"""Role-gated views that are not built yet."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ..core.roles import Capability
from ..deps.auth import require_api_key, require_capability

router = APIRouter(prefix="/api/v1", tags=["views"], dependencies=[Depends(require_api_key)])


@router.get("/analytics", dependencies=[Depends(require_capability(Capability.ANALYTICS))])
async def api_analytics():
    return {"view": "analytics", "status": "coming_soon", "message": "Analytics coming soon..."}


@router.get("/management", dependencies=[Depends(require_capability(Capability.MANAGEMENT))])
async def api_management():
    return {"view": "management", "status": "coming_soon", "message": "User Management coming soon..."}
