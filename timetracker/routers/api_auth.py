from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request, status

from ..deps.auth import SESSION_TOKEN_KEY, get_identity, get_session_state, require_api_key
from ..schemas.auth import MeResponse, SignInRequest, SignInResponse, TokenResponse
from ..services.identity import IdentityProvider
from ..services.session_state import SessionState

router = APIRouter(prefix="/api/v1/auth", tags=["auth"], dependencies=[Depends(require_api_key)])


@router.post(
    "/sign-in",
    response_model=SignInResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Email a passwordless login link",
)
async def sign_in(payload: SignInRequest, state: SessionState = Depends(get_session_state)):
    await state.sign_in(payload.email, payload.name)
    return SignInResponse()


@router.get("/verify", response_model=TokenResponse, summary="Exchange a login link for a session")
async def verify(
    request: Request,
    token: str = Query(..., min_length=1),
    state: SessionState = Depends(get_session_state),
    identity: IdentityProvider = Depends(get_identity),
):
    session = await state.complete_sign_in(token)
    request.session[SESSION_TOKEN_KEY] = session.access_token
    return TokenResponse(access_token=session.access_token, expires_in=identity.session_ttl_seconds)


@router.post("/sign-out")
async def sign_out(request: Request, state: SessionState = Depends(get_session_state)):
    await state.sign_out()
    request.session.clear()
    return {"status": "signed_out"}


@router.get("/me", response_model=MeResponse)
async def me(state: SessionState = Depends(get_session_state)):
    user = state.require_user()
    return MeResponse(user=user, capabilities=list(state.capabilities))
