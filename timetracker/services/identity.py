"""Passwordless identity provider.

Sign-in happens in two steps: ``send_passwordless_link`` mails a short-lived
signed link, and ``verify_link`` exchanges it for a session token. Listeners
registered with ``subscribe`` are told about every sign-in and sign-out.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable
from urllib.parse import urlencode

from ..core.security import ACCESS_TOKEN, LINK_TOKEN, decode_token, encode_token

logger = logging.getLogger(__name__)

SIGNED_IN = "signed_in"
SIGNED_OUT = "signed_out"


@dataclass(frozen=True)
class Session:
    session_id: str
    email: str
    access_token: str
    expires_at: datetime


@dataclass(frozen=True)
class AuthEvent:
    kind: str
    session: Session


AuthListener = Callable[[AuthEvent], Awaitable[None]]
LinkSender = Callable[[str, str], None]


def log_link_sender(email: str, link: str) -> None:
    """Default delivery: write the link to the log instead of sending mail."""
    logger.info("auth.link_issued", extra={"extra_data": {"email": email, "link": link}})


class IdentityProvider:
    def __init__(
        self,
        *,
        secret: str,
        base_url: str,
        link_ttl: timedelta = timedelta(minutes=15),
        session_ttl: timedelta = timedelta(days=7),
        sender: LinkSender = log_link_sender,
    ) -> None:
        self._secret = secret
        self._base_url = base_url.rstrip("/")
        self._link_ttl = link_ttl
        self._session_ttl = session_ttl
        self._sender = sender
        self._listeners: list[AuthListener] = []
        # Revoked session ids, kept until the token would have expired anyway.
        self._revoked: dict[str, datetime] = {}

    @property
    def session_ttl_seconds(self) -> int:
        return int(self._session_ttl.total_seconds())

    @property
    def revoked_sessions(self) -> frozenset[str]:
        return frozenset(self._revoked)

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _emit(self, event: AuthEvent) -> None:
        for listener in list(self._listeners):
            await listener(event)

    def get_current_session(self, token: str | None) -> Session | None:
        if not token:
            return None
        try:
            payload = decode_token(token, self._secret, verify_type=ACCESS_TOKEN)
        except ValueError:
            return None
        if payload.jti in self._revoked:
            return None
        return Session(
            session_id=payload.jti,
            email=payload.sub,
            access_token=token,
            expires_at=payload.exp,
        )

    def send_passwordless_link(self, email: str) -> bool:
        token = encode_token(email, self._link_ttl, LINK_TOKEN, self._secret)
        link = f"{self._base_url}/api/v1/auth/verify?{urlencode({'token': token})}"
        try:
            self._sender(email, link)
        except Exception:
            logger.exception("auth.link_delivery_failed", extra={"extra_data": {"email": email}})
            return False
        return True

    async def verify_link(self, token: str) -> Session | None:
        try:
            payload = decode_token(token, self._secret, verify_type=LINK_TOKEN)
        except ValueError:
            return None
        access_token = encode_token(payload.sub, self._session_ttl, ACCESS_TOKEN, self._secret)
        session = self.get_current_session(access_token)
        if session is None:
            return None
        await self._emit(AuthEvent(SIGNED_IN, session))
        return session

    async def sign_out(self, session: Session) -> None:
        now = datetime.now(timezone.utc)
        self._revoked = {jti: expires for jti, expires in self._revoked.items() if expires > now}
        self._revoked[session.session_id] = session.expires_at
        await self._emit(AuthEvent(SIGNED_OUT, session))
