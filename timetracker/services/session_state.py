"""The signed-in user for one client session.

``SessionState`` is created explicitly, initialised from whatever session
token the client already holds, kept current by the identity provider's
events and torn down with ``close``. Nothing reads it globally; callers pass
it (or its ``user``) to whatever needs to know who is signed in.
"""

from __future__ import annotations

import logging

from ..core.errors import NotAuthorized, NotSignedIn, SignInFailed
from ..core.roles import Capability, capabilities_for
from ..schemas.auth import UserOut
from .gateway import DataGateway
from .identity import SIGNED_IN, SIGNED_OUT, AuthEvent, IdentityProvider, Session

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class SessionState:
    def __init__(self, provider: IdentityProvider, gateway: DataGateway) -> None:
        self.provider = provider
        self.gateway = gateway
        self.session: Session | None = None
        self.user: UserOut | None = None
        self.loading = True
        self._unsubscribe = None

    @property
    def capabilities(self) -> tuple[Capability, ...]:
        return capabilities_for(self.user.role if self.user else None)

    async def initialize(self, token: str | None = None) -> UserOut | None:
        if self._unsubscribe is None:
            self._unsubscribe = self.provider.subscribe(self._on_auth_event)
        try:
            session = self.provider.get_current_session(token)
            if session is not None:
                self.session = session
                await self._load_profile(session.email)
        finally:
            self.loading = False
        return self.user

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def require_user(self) -> UserOut:
        if self.user is None:
            raise NotSignedIn()
        return self.user

    async def _on_auth_event(self, event: AuthEvent) -> None:
        if event.kind == SIGNED_IN:
            # Another tab of the same person signed in; refresh the profile.
            if self.session is not None and self.session.email == event.session.email:
                await self._load_profile(event.session.email)
        elif event.kind == SIGNED_OUT:
            if self.session is not None and self.session.session_id == event.session.session_id:
                self.session = None
                self.user = None
        self.loading = False

    async def _load_profile(self, email: str) -> None:
        result = await self.gateway.table("users").select().eq("email", normalize_email(email)).single().execute()
        if not result.ok:
            logger.warning(
                "session.profile_missing",
                extra={"extra_data": {"email": email, "error": result.error}},
            )
            self.user = None
            return
        self.user = UserOut.model_validate(result.data)

    async def sign_in(self, email: str, name: str | None = None) -> None:
        """Request a login link for an allow-listed email.

        Raises ``NotAuthorized`` (and writes nothing) when the email is not on
        the allow-list, ``SignInFailed`` when the link cannot be sent or the
        profile cannot be saved.
        """

        email = normalize_email(email)
        self.loading = True
        try:
            authorized = await self.gateway.table("authorized_emails").select().eq("email", email).single().execute()
            if not authorized.ok or not authorized.data:
                logger.info("session.sign_in_rejected", extra={"extra_data": {"email": email}})
                raise NotAuthorized()
            if not self.provider.send_passwordless_link(email):
                raise SignInFailed()
            profile = {
                "email": email,
                "name": (name or "").strip() or email.split("@")[0],
                "role": authorized.data["role"],
            }
            upserted = await self.gateway.upsert("users", profile, on="email")
            if not upserted.ok:
                logger.warning(
                    "session.profile_upsert_failed",
                    extra={"extra_data": {"email": email, "error": upserted.error}},
                )
                raise SignInFailed()
        finally:
            self.loading = False

    async def complete_sign_in(self, link_token: str) -> Session:
        """Exchange a link token for a session and load the profile."""

        session = await self.provider.verify_link(link_token)
        if session is None:
            raise NotSignedIn("Login link is invalid or has expired")
        self.session = session
        await self._load_profile(session.email)
        if self.user is None:
            raise NotAuthorized()
        return session

    async def sign_out(self) -> None:
        if self.session is not None:
            await self.provider.sign_out(self.session)
        self.session = None
        self.user = None
        self.close()
