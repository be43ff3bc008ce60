"""Tests for server-side sessions and inactivity expiry."""

import json
from datetime import timedelta

import pytest

from tests.support import collection_path
from zenmedix.core.exceptions import SessionExpiredException, UnauthorizedException
from zenmedix.services.session_service import SessionService


@pytest.fixture
def sessions(storage, store, clock) -> SessionService:
    return SessionService(storage, store, clock=clock)


@pytest.mark.asyncio
async def test_activity_extends_session(sessions, make_user, clock):
    """Each use moves the inactivity window forward."""
    session = sessions.create(make_user(), "pb-token")

    clock.advance(minutes=14)
    touched = await sessions.touch(session.session_id)
    assert touched.last_activity == clock()

    clock.advance(minutes=14)
    touched = await sessions.touch(session.session_id)
    assert sessions.expires_at(touched) == clock.advance(minutes=15)


@pytest.mark.asyncio
async def test_idle_session_expires_at_fifteen_minutes(sessions, make_user, clock, stub):
    """A session unused for fifteen minutes is closed and audited."""
    session = sessions.create(make_user(), "pb-token")

    clock.advance(minutes=15)
    with pytest.raises(SessionExpiredException) as exc_info:
        await sessions.touch(session.session_id)

    assert exc_info.value.status_code == 401
    assert sessions.get(session.session_id) is None
    assert stub.audit_actions() == ["SESSION_EXPIRED"]

    audit_request = stub.calls("POST", collection_path("audit_logs"))[0]
    assert audit_request.headers["Authorization"] == "pb-token"
    assert json.loads(audit_request.content)["user"] == "user1"


@pytest.mark.asyncio
async def test_expired_session_cannot_be_reused(sessions, make_user, clock):
    session = sessions.create(make_user(), "pb-token")
    clock.advance(minutes=20)

    with pytest.raises(SessionExpiredException):
        await sessions.touch(session.session_id)
    with pytest.raises(UnauthorizedException):
        await sessions.touch(session.session_id)


@pytest.mark.asyncio
async def test_unknown_session(sessions):
    with pytest.raises(UnauthorizedException) as exc_info:
        await sessions.touch("missing")

    assert exc_info.value.message == "Session not found"


@pytest.mark.asyncio
async def test_end_audits_duration_and_deletes(sessions, make_user, clock, stub):
    """Logout records the session length in milliseconds."""
    user = make_user()
    session = sessions.create(user, "pb-token")
    sessions.record_last_access(user.id)

    clock.advance(minutes=10)
    await sessions.end(session)

    assert sessions.get(session.session_id) is None
    body = json.loads(stub.calls("POST", collection_path("audit_logs"))[0].content)
    assert body["action"] == "LOGOUT"
    assert body["details"]["sessionDuration"] == 600_000


def test_info_reports_expiry(sessions, make_user, clock):
    user = make_user()
    session = sessions.create(user, "pb-token")
    stamp = sessions.record_last_access(user.id)

    info = sessions.info(session)

    assert info.user.id == user.id
    assert info.last_access == stamp
    assert info.expires_at == clock.advance(minutes=15)


def test_sessions_are_stored_with_max_age_ttl(sessions, make_user, fake_redis):
    session = sessions.create(make_user(), "pb-token")

    assert fake_redis.ttls[f"zenmedix-test:session:{session.session_id}"] == 12 * 3600


@pytest.mark.asyncio
async def test_zero_timeout_is_honoured(storage, store, clock, make_user):
    """An explicit zero timeout expires sessions at once instead of using the default."""
    sessions = SessionService(storage, store, clock=clock, timeout=timedelta(0))
    session = sessions.create(make_user(), "pb-token")

    assert sessions.timeout == timedelta(0)
    with pytest.raises(SessionExpiredException):
        await sessions.touch(session.session_id)
