from __future__ import annotations

from pydantic import BaseModel, Field

from ..core.roles import Capability, Role


class SignInRequest(BaseModel):
    email: str = Field(..., min_length=3)
    name: str | None = None

    model_config = {
        "json_schema_extra": {
            "example": {"email": "dana@example.com", "name": "Dana"}
        }
    }


class SignInResponse(BaseModel):
    status: str = "link_sent"
    message: str = "Check your email for the login link!"


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class UserOut(BaseModel):
    id: str
    email: str
    name: str
    role: Role

    model_config = {"from_attributes": True}


class MeResponse(BaseModel):
    user: UserOut
    capabilities: list[Capability]
