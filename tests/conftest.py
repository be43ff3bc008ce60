import os
from collections.abc import AsyncGenerator, Callable

# Settings require a signing key; it must exist before the app is imported
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from tests.support import RECORD_STORE_URL, START_TIME, FakeClock, FakeRedis, RecordStoreStub
from zenmedix.core.record_store import RecordStore
from zenmedix.core.redis_client import LocalStorage
from zenmedix.core.security import create_session_token
from zenmedix.dependencies import get_clock, get_storage, get_store
from zenmedix.main import app
from zenmedix.schemas.users import UserProfile
from zenmedix.services.session_service import SessionService


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def storage(fake_redis: FakeRedis) -> LocalStorage:
    return LocalStorage(fake_redis, namespace="zenmedix-test")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(START_TIME)


@pytest.fixture
def stub() -> RecordStoreStub:
    return RecordStoreStub()


@pytest_asyncio.fixture
async def store(stub: RecordStoreStub) -> AsyncGenerator[RecordStore, None]:
    http_client = httpx.AsyncClient(
        transport=httpx.MockTransport(stub),
        base_url=RECORD_STORE_URL,
    )
    yield RecordStore(http_client)
    await http_client.aclose()


@pytest_asyncio.fixture
async def client(
    storage: LocalStorage,
    clock: FakeClock,
    store: RecordStore,
) -> AsyncGenerator[AsyncClient, None]:
    """Test HTTP client with storage, clock and record store replaced."""
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_store] = lambda: store

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def make_user() -> Callable[..., UserProfile]:
    def factory(role: str | None = "medico", user_id: str = "user1") -> UserProfile:
        return UserProfile(
            id=user_id,
            email=f"{user_id}@clinic.test",
            name="Dra. Ana López",
            role=role,
        )

    return factory


@pytest.fixture
def login_as(
    storage: LocalStorage,
    store: RecordStore,
    clock: FakeClock,
    make_user: Callable[..., UserProfile],
) -> Callable[..., dict[str, str]]:
    """Open a session directly and return its Authorization header."""

    def factory(role: str | None = "medico") -> dict[str, str]:
        user = make_user(role)
        session = SessionService(storage, store, clock=clock).create(user, "pb-user-token")
        token = create_session_token(session.session_id, user.id)
        return {"Authorization": f"Bearer {token}"}

    return factory


@pytest.fixture
def auth_headers(login_as: Callable[..., dict[str, str]]) -> dict[str, str]:
    return login_as("medico")
