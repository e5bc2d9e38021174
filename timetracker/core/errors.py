from __future__ import annotations

from typing import Any, Iterable

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException


class TrackerError(Exception):
    """Base class for every failure surfaced to the user as a notice."""

    code = "tracker_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Something went wrong"

    def __init__(self, message: str | None = None, *, details: Any | None = None) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class NotSignedIn(TrackerError):
    code = "not_signed_in"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Sign in required"


class NotAuthorized(TrackerError):
    """Email is missing from the allow-list, or the role lacks a capability."""

    code = "not_authorized"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Email not authorized. Please contact your manager."


class SignInFailed(TrackerError):
    code = "sign_in_failed"
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Failed to sign in"


class FetchFailed(TrackerError):
    code = "fetch_failed"
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Failed to load data"


class WriteFailed(TrackerError):
    code = "write_failed"
    status_code = status.HTTP_502_BAD_GATEWAY
    verb = "save"

    def __init__(self, entity: str, message: str | None = None, *, details: Any | None = None) -> None:
        self.entity = entity
        super().__init__(message or f"Failed to {self.verb} {entity}", details=details)


class CreateFailed(WriteFailed):
    code = "create_failed"


class UpdateFailed(WriteFailed):
    code = "update_failed"


class DeleteFailed(WriteFailed):
    code = "delete_failed"
    verb = "delete"


class ValidationFailed(TrackerError):
    code = "validation_failed"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, fields: Iterable[str], message: str | None = None) -> None:
        self.fields = list(fields)
        super().__init__(
            message or f"Missing required field(s): {', '.join(self.fields)}",
            details={"fields": self.fields},
        )


class ConfirmationRequired(ValidationFailed):
    code = "confirmation_required"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, entity: str) -> None:
        self.entity = entity
        super().__init__(
            ["confirm"],
            f"Deleting this {entity} also deletes everything attached to it; confirm to continue",
        )


class ErrorEnvelope(JSONResponse):
    def __init__(
        self,
        *,
        status_code: int,
        code: str,
        message: str,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"code": code, "message": message}
        if details is not None:
            payload["details"] = details
        super().__init__(payload, status_code=status_code, headers=headers)


async def tracker_exception_handler(request: Request, exc: TrackerError):
    return ErrorEnvelope(
        status_code=exc.status_code,
        code=exc.code,
        message=exc.message,
        details=exc.details,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    message = detail if isinstance(detail, str) else "Error"
    details = detail if isinstance(detail, dict) else None
    return ErrorEnvelope(
        status_code=exc.status_code,
        code="http_error",
        message=message,
        details=details,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return ErrorEnvelope(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        code="validation_error",
        message="Validation failed",
        details={"errors": jsonable_encoder(exc.errors())},
    )
