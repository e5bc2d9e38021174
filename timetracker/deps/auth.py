from __future__ import annotations

import hmac
from typing import AsyncIterator

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security.utils import get_authorization_scheme_param

from ..core.errors import NotAuthorized
from ..core.roles import Capability, has_capability
from ..middlewares import principal_ctx_var
from ..schemas.auth import UserOut
from ..services.gateway import DataGateway
from ..services.identity import IdentityProvider
from ..services.session_state import SessionState

SESSION_TOKEN_KEY = "access_token"


def get_gateway(request: Request) -> DataGateway:
    return request.app.state.gateway


def get_identity(request: Request) -> IdentityProvider:
    return request.app.state.identity


async def require_api_key(
    request: Request,
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
) -> None:
    settings = request.app.state.settings
    if not settings.backend_configured:
        return
    provided = (x_api_key or "").strip()
    if not provided or not hmac.compare_digest(provided, settings.BACKEND_API_KEY.strip()):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")


def _session_token(request: Request, authorization: str | None) -> str | None:
    if authorization:
        scheme, credentials = get_authorization_scheme_param(authorization)
        if scheme.lower() == "bearer" and credentials:
            return credentials
    return request.session.get(SESSION_TOKEN_KEY)


async def get_session_state(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
    gateway: DataGateway = Depends(get_gateway),
    identity: IdentityProvider = Depends(get_identity),
) -> AsyncIterator[SessionState]:
    state = SessionState(identity, gateway)
    try:
        user = await state.initialize(_session_token(request, authorization))
        if user is not None:
            principal_ctx_var.set(user.email)
            request.state.principal = user.email
        yield state
    finally:
        state.close()


async def current_user(state: SessionState = Depends(get_session_state)) -> UserOut:
    return state.require_user()


def require_capability(capability: Capability):
    async def dependency(user: UserOut = Depends(current_user)) -> UserOut:
        if not has_capability(user.role, capability):
            raise NotAuthorized(f"Your role does not include {capability.value}")
        return user

    return dependency
