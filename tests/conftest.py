import os

# Must be set before app.config is imported anywhere
os.environ["POSTGRES_URL"] = "sqlite+aiosqlite://"
os.environ["MONGO_URL"] = "mongodb://localhost:27017"
os.environ["MONGO_DB"] = "nomadtable_test"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["DM_REPLY_STRATEGY"] = "none"
os.environ["LOG_LEVEL"] = "WARNING"

import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.auth.jwt_handler import create_access_token
from app.auth.schemas import CallerIdentity
from app.db.capabilities import StoreCapabilities, set_capabilities
from app.db.mongo import get_mongo_db
from app.db.session import Base, get_db
from app.main import app
from app.users.services import ProfileService

TEST_DB_URL = "sqlite+aiosqlite://"


def new_engine():
    return create_async_engine(
        TEST_DB_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


@pytest.fixture(autouse=True)
def full_capabilities():
    set_capabilities(StoreCapabilities.full())
    yield
    set_capabilities(StoreCapabilities.full())


@pytest_asyncio.fixture
async def engine():
    engine = new_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def mongo():
    return AsyncMongoMockClient()["nomadtable_test"]


@pytest_asyncio.fixture
async def make_user(db):
    """Create a profile the way first authentication does and return its identity."""

    async def _make(name: str = "User") -> CallerIdentity:
        caller = CallerIdentity(user_id=str(uuid.uuid4()), name=name)
        await ProfileService(db).ensure_profile(caller)
        return caller

    return _make


def auth_headers(user_id: str, name: str = "User") -> dict:
    token = create_access_token({"user_id": user_id, "name": name})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    def _headers(name: str = "User"):
        user_id = str(uuid.uuid4())
        return user_id, auth_headers(user_id, name)

    return _headers


@pytest_asyncio.fixture
async def client(session_factory, mongo):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mongo_db] = lambda: mongo
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
