import os

os.environ.setdefault("JWT_SECRET", "test-secret-key")

import uuid

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

import app.db.models  # noqa: F401
from app.api.dependencies import get_content_registry, get_user_directory
from app.core.db import Base, get_db
from app.core.security import create_access_token
from app.domains.collaboration.entities import Collaboration, ContentType
from app.domains.content.providers import ContentRegistry, InMemoryContentProvider, InMemoryUserDirectory


@pytest.fixture
def tenant_id():
    return uuid.uuid4()


@pytest.fixture
def owner_id():
    return uuid.uuid4()


@pytest.fixture
def member_id():
    return uuid.uuid4()


@pytest.fixture
def other_id():
    return uuid.uuid4()


@pytest.fixture
def collaboration(tenant_id, owner_id):
    """Совместная работа над курсом без участников"""
    return Collaboration.create(
        tenant_id=tenant_id,
        content_id=uuid.uuid4(),
        content_type=ContentType.COURSE,
        owner_id=owner_id
    )


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def content_provider():
    return InMemoryContentProvider()


@pytest.fixture
def content_registry(content_provider):
    registry = ContentRegistry()
    for content_type in ContentType:
        registry.register(content_type, content_provider)
    return registry


@pytest.fixture
def user_directory(owner_id, member_id):
    directory = InMemoryUserDirectory()
    directory.add(owner_id, first_name="Olga", last_name="Owner", email="owner@example.com")
    directory.add(member_id, first_name="Mark", last_name="Member", email="member@example.com")
    return directory


@pytest.fixture
def course(content_provider, tenant_id, owner_id):
    return content_provider.add(
        uuid.uuid4(), tenant_id, owner_id,
        title="Intro to Python",
        modules=[{"title": "Variables"}, {"title": "Loops"}]
    )


@pytest.fixture
async def client(session_factory, content_registry, user_directory):
    from app.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_content_registry] = lambda: content_registry
    app.dependency_overrides[get_user_directory] = lambda: user_directory

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(tenant_id):
    def make(user_id):
        token = create_access_token(user_id, tenant_id)
        return {"Authorization": f"Bearer {token}"}
    return make
