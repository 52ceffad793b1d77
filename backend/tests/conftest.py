"""
Shared fixtures for the billing API tests.

Each test gets fresh tables in one in-memory SQLite database (a single
shared connection, foreign keys on) and an empty in-process token store
in place of Redis.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from backend.app.main import app
from backend.app.db.session import get_db, Base
from backend.app.core.config import settings
from backend.app.core.security import get_password_hash
from backend.app.models.user import User
from backend.app.models.enums import UserRole
import backend.app.core.redis_client as redis_client_module

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    # Ledger rows reference their party; SQLite only enforces that with the pragma
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


class FakeTokenStore:
    """The slice of redis.asyncio.Redis the revoked-token store calls."""

    def __init__(self):
        self.store = {}
        self.ttls = {}

    async def ping(self):
        return True

    async def setex(self, key, seconds, value):
        self.store[key] = value
        self.ttls[key] = seconds
        return True

    async def get(self, key):
        return self.store.get(key)

    async def exists(self, key):
        return int(key in self.store)

    async def delete(self, key):
        self.ttls.pop(key, None)
        return int(self.store.pop(key, None) is not None)

    async def flushdb(self):
        self.store.clear()
        self.ttls.clear()

    async def aclose(self):
        pass


_token_store = FakeTokenStore()


@pytest.fixture(scope="session")
def redis_client_session():
    return _token_store


@pytest.fixture(scope="session", autouse=True)
def apply_overrides(redis_client_session):
    """Swap in the fake token store and the test database for the whole run."""
    original_client = redis_client_module.redis_client
    redis_client_module.redis_client = redis_client_session

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield

    app.dependency_overrides = {}
    redis_client_module.redis_client = original_client


@pytest.fixture(autouse=True)
async def setup_database(redis_client_session):
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    await redis_client_session.flushdb()

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def strict_floor(monkeypatch):
    """Switch the balance floor policy to strict for one test."""
    monkeypatch.setattr(settings, "balance_floor_policy", "strict")


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

# Shared session for fixture data creation
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


async def _fetch(model, pk):
    """Read a row through a fresh session (no identity-map caching)."""
    async with TestingSessionLocal() as session:
        return await session.get(model, pk)


@pytest.fixture
def fetch():
    return _fetch


async def create_user(db_session, username, role=UserRole.STAFF, password="password123", pin=None, full_name=None):
    user = User(
        email=f"{username}@test.com",
        username=username,
        full_name=full_name,
        hashed_password=get_password_hash(password),
        hashed_pin=get_password_hash(pin) if pin else None,
        role=role,
        is_active=True,
        is_superuser=role == UserRole.ADMIN
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


async def login(client, username, password="password123"):
    response = await client.post("/v1/auth/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return response.json()["access_token"]


@pytest.fixture
async def admin_token(client, db_session):
    await create_user(db_session, "admin", role=UserRole.ADMIN, full_name="Administrator", pin="1234")
    return await login(client, "admin")


@pytest.fixture
async def staff_token(client, db_session):
    await create_user(db_session, "desk", role=UserRole.STAFF, full_name="Front Desk", pin="4321")
    return await login(client, "desk")


@pytest.fixture
def admin_headers(admin_token):
    return {"Authorization": f"Bearer {admin_token}"}


@pytest.fixture
def staff_headers(staff_token):
    return {"Authorization": f"Bearer {staff_token}"}


@pytest.fixture
def make_user(db_session):
    async def _make(username, **kwargs):
        return await create_user(db_session, username, **kwargs)
    return _make


@pytest.fixture
def login_as(client):
    async def _login(username, password="password123"):
        return await login(client, username, password)
    return _login


@pytest.fixture
def session_factory():
    """Session maker for tests that need one session per concurrent request."""
    return TestingSessionLocal
