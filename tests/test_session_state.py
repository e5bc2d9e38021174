"""Allow-listed passwordless sign-in and the session lifecycle."""

import asyncio
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from urllib.parse import parse_qs, urlparse

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from timetracker.core.errors import NotAuthorized, NotSignedIn, SignInFailed
from timetracker.core.roles import Capability
from timetracker.db.session import build_engine, build_session_factory, create_schema
from timetracker.services.gateway import SqlGateway, UnconfiguredGateway
from timetracker.services.identity import SIGNED_IN, SIGNED_OUT, IdentityProvider, Session
from timetracker.services.session_state import SessionState


class Outbox:
    def __init__(self):
        self.sent = []

    def __call__(self, email, link):
        self.sent.append((email, link))

    def last_token(self):
        _, link = self.sent[-1]
        return parse_qs(urlparse(link).query)["token"][0]


@pytest.fixture()
def gateway():
    engine = build_engine("sqlite://")
    create_schema(engine)
    gateway = SqlGateway(build_session_factory(engine))
    asyncio.run(gateway.insert("authorized_emails", {"email": "dana@example.com", "role": "supervisor"}))
    return gateway


@pytest.fixture()
def outbox():
    return Outbox()


@pytest.fixture()
def provider(outbox):
    return IdentityProvider(secret="test-secret", base_url="http://tracker.test/", sender=outbox)


def _users(gateway):
    return asyncio.run(gateway.table("users").select().execute()).data


def test_unlisted_email_is_not_authorized_and_creates_no_user(gateway, provider, outbox):
    state = SessionState(provider, gateway)
    with pytest.raises(NotAuthorized):
        asyncio.run(state.sign_in("stranger@example.com", "Stranger"))
    assert _users(gateway) == []
    assert outbox.sent == []
    assert state.loading is False


def test_listed_email_gets_a_link_and_a_profile(gateway, provider, outbox):
    state = SessionState(provider, gateway)
    asyncio.run(state.sign_in("  Dana@Example.com "))
    assert outbox.sent[0][0] == "dana@example.com"
    assert outbox.sent[0][1].startswith("http://tracker.test/api/v1/auth/verify?token=")
    users = _users(gateway)
    assert len(users) == 1
    assert users[0]["name"] == "dana"
    assert users[0]["role"] == "supervisor"


def test_signing_in_again_updates_the_profile(gateway, provider):
    state = SessionState(provider, gateway)
    asyncio.run(state.sign_in("dana@example.com"))
    asyncio.run(state.sign_in("dana@example.com", "Dana Scully"))
    users = _users(gateway)
    assert len(users) == 1
    assert users[0]["name"] == "Dana Scully"


def test_failed_link_delivery_is_a_sign_in_failure(gateway):
    def broken_sender(email, link):
        raise OSError("smtp down")

    provider = IdentityProvider(secret="s", base_url="http://tracker.test", sender=broken_sender)
    with pytest.raises(SignInFailed):
        asyncio.run(SessionState(provider, gateway).sign_in("dana@example.com"))
    assert _users(gateway) == []


def test_unconfigured_backend_blocks_sign_in(provider):
    with pytest.raises(NotAuthorized):
        asyncio.run(SessionState(provider, UnconfiguredGateway()).sign_in("dana@example.com"))


def test_following_the_link_signs_in_and_exposes_capabilities(gateway, provider, outbox):
    events = []

    async def listener(event):
        events.append(event.kind)

    provider.subscribe(listener)
    state = SessionState(provider, gateway)

    async def scenario():
        await state.initialize(None)
        assert state.user is None
        assert state.capabilities == ()
        await state.sign_in("dana@example.com", "Dana")
        return await state.complete_sign_in(outbox.last_token())

    session = asyncio.run(scenario())
    assert session.email == "dana@example.com"
    assert state.user.name == "Dana"
    assert state.capabilities == (Capability.TIME_TRACKING, Capability.PROJECTS, Capability.ANALYTICS)
    assert events == [SIGNED_IN]


def test_bad_link_token_is_rejected(gateway, provider):
    state = SessionState(provider, gateway)
    with pytest.raises(NotSignedIn):
        asyncio.run(state.complete_sign_in("not-a-token"))


def test_access_token_cannot_be_used_as_a_link(gateway, provider, outbox):
    state = SessionState(provider, gateway)

    async def scenario():
        await state.sign_in("dana@example.com")
        session = await state.complete_sign_in(outbox.last_token())
        await SessionState(provider, gateway).complete_sign_in(session.access_token)

    with pytest.raises(NotSignedIn):
        asyncio.run(scenario())


def test_existing_session_is_restored_on_initialize(gateway, provider, outbox):
    async def scenario():
        first = SessionState(provider, gateway)
        await first.sign_in("dana@example.com")
        session = await first.complete_sign_in(outbox.last_token())
        restored = SessionState(provider, gateway)
        await restored.initialize(session.access_token)
        return restored

    restored = asyncio.run(scenario())
    assert restored.user.email == "dana@example.com"
    assert restored.loading is False
    assert restored.require_user().role.value == "supervisor"


def test_garbage_token_initializes_signed_out(gateway, provider):
    state = SessionState(provider, gateway)
    assert asyncio.run(state.initialize("garbage")) is None
    assert state.loading is False
    with pytest.raises(NotSignedIn):
        state.require_user()


def test_sign_out_revokes_the_session_everywhere(gateway, provider, outbox):
    events = []

    async def listener(event):
        events.append(event.kind)

    provider.subscribe(listener)

    async def scenario():
        first = SessionState(provider, gateway)
        await first.sign_in("dana@example.com")
        session = await first.complete_sign_in(outbox.last_token())
        other_tab = SessionState(provider, gateway)
        await other_tab.initialize(session.access_token)
        await first.sign_out()
        return session, first, other_tab

    session, first, other_tab = asyncio.run(scenario())
    assert first.user is None
    assert other_tab.user is None
    assert provider.get_current_session(session.access_token) is None
    assert events == [SIGNED_IN, SIGNED_OUT]


def test_close_unsubscribes_from_events(gateway, provider, outbox):
    async def scenario():
        first = SessionState(provider, gateway)
        await first.sign_in("dana@example.com")
        session = await first.complete_sign_in(outbox.last_token())
        watcher = SessionState(provider, gateway)
        await watcher.initialize(session.access_token)
        watcher.close()
        await first.sign_out()
        return watcher

    watcher = asyncio.run(scenario())
    assert watcher.user is not None


def test_expired_revocations_are_forgotten(provider):
    now = datetime.now(timezone.utc)
    expired = Session(session_id="old", email="dana@example.com", access_token="t-1", expires_at=now - timedelta(minutes=1))
    live = Session(session_id="new", email="dana@example.com", access_token="t-2", expires_at=now + timedelta(days=1))

    asyncio.run(provider.sign_out(expired))
    assert provider.revoked_sessions == {"old"}
    asyncio.run(provider.sign_out(live))
    assert provider.revoked_sessions == {"new"}
