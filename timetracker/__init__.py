"""Application factory and top-level wiring for TimeTracker Pro.

``create_app`` brings together configuration, the data gateway, the identity
provider, middleware, routers and error handling. Everything a request needs
hangs off ``app.state`` so dependencies never reach for module globals.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from .core.config import AppSettings, get_settings
from .core.errors import (
    TrackerError,
    http_exception_handler,
    tracker_exception_handler,
    validation_exception_handler,
)
from .db.session import build_engine, build_session_factory, create_schema
from .middlewares import RequestIdMiddleware
from .services.gateway import DataGateway, SqlGateway, UnconfiguredGateway
from .services.identity import IdentityProvider, LinkSender, log_link_sender

logger = logging.getLogger(__name__)


def build_gateway(settings: AppSettings) -> DataGateway:
    if not settings.backend_configured:
        logger.warning(
            "backend.not_configured",
            extra={"extra_data": {"hint": "set BACKEND_URL and BACKEND_API_KEY"}},
        )
        return UnconfiguredGateway()
    engine = build_engine(settings.BACKEND_URL)
    create_schema(engine)
    return SqlGateway(build_session_factory(engine))


def create_app(settings: AppSettings | None = None, *, link_sender: LinkSender = log_link_sender) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title=settings.APP_NAME)
    app.state.settings = settings
    app.state.gateway = build_gateway(settings)
    app.state.identity = IdentityProvider(
        secret=settings.JWT_SECRET,
        base_url=settings.PUBLIC_BASE_URL,
        link_ttl=timedelta(minutes=settings.LINK_TTL_MIN),
        session_ttl=timedelta(days=settings.SESSION_TTL_DAYS),
        sender=link_sender,
    )

    # ---------- Middleware ----------
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.APP_SECRET,
        session_cookie=settings.SESSION_COOKIE_NAME,
        max_age=settings.SESSION_MAX_AGE,
        same_site="lax",
        https_only=False,  # set True once the app is always accessed via HTTPS at the edge
    )
    if settings.allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.allowed_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    app.add_middleware(RequestIdMiddleware)

    # ---------- Routers ----------
    from .routers import api_auth, api_projects, api_time_entries, api_views

    app.include_router(api_auth.router)
    app.include_router(api_time_entries.router)
    app.include_router(api_projects.router)
    app.include_router(api_views.router)

    # ---------- Exception handling ----------
    app.add_exception_handler(TrackerError, tracker_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    return app


__all__ = ["build_gateway", "create_app"]
