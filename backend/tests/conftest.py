# tests/conftest.py
from __future__ import annotations

import os
import uuid

# Settings are read at import time; pin the test environment first.
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL_ASYNC"] = "sqlite+aiosqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["RETURN_CODES_IN_RESPONSE"] = "true"
os.environ["REDIS_URL"] = ""
os.environ["LOG_JSON"] = "false"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.db.session import get_db

# Ensure Base + models are registered before create_all
from app.db.base import Base  # noqa: F401
import app.models as _models  # noqa: F401

from app.core.roles import UserRole, UserStatus
from app.core.security import create_access_token, hash_password
from app.crud.tenant_graph import build_minimal_tenant
from app.crud.tenants import slugify
from app.models.tenant import Tenant
from app.models.user import User
from app.schemas.tenant import TenantMinimalCreate

DEFAULT_PASSWORD = "Passw0rd!"


# ---------------------------------------------------------
# Engine + schema lifecycle
# ---------------------------------------------------------
@pytest_asyncio.fixture()
async def engine(tmp_path):
    """
    One SQLite file per test. Every session gets its own connection so the
    API and the assertions see each other only through committed data.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        future=True,
        echo=False,
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture()
def sessionmaker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


# ---------------------------------------------------------
# DB session for assertions / setup
# ---------------------------------------------------------
@pytest_asyncio.fixture()
async def db(sessionmaker):
    """
    Session for test setup & assertions ONLY.
    Commit seeded rows before calling the API.
    """
    async with sessionmaker() as session:
        yield session
        await session.rollback()


# ---------------------------------------------------------
# FastAPI app + dependency override
# ---------------------------------------------------------
@pytest.fixture()
def app(sessionmaker):
    from app.main import app as fastapi_app

    async def _override_get_db():
        async with sessionmaker() as session:
            yield session

    fastapi_app.dependency_overrides[get_db] = _override_get_db
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


# ---------------------------------------------------------
# HTTP client
# ---------------------------------------------------------
@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ---------------------------------------------------------
# Seed helpers
# ---------------------------------------------------------
@pytest.fixture()
def make_user(db):
    async def _make(
        email: str | None = None,
        role: UserRole = UserRole.STAFF,
        tenant_id: uuid.UUID | None = None,
        status: UserStatus = UserStatus.ACTIVE,
        email_verified: bool = True,
        password: str = DEFAULT_PASSWORD,
        first_name: str = "Test",
    ) -> User:
        user = User(
            email=(email or f"user_{uuid.uuid4().hex[:8]}@example.com").lower(),
            password_hash=hash_password(password),
            first_name=first_name,
            last_name="User",
            role=role.value,
            status=status.value,
            tenant_id=tenant_id,
            email_verified=email_verified,
            login_attempts=0,
            is_first_login=True,
        )
        db.add(user)
        await db.commit()
        return user

    return _make


@pytest.fixture()
def make_tenant(db):
    async def _make(name: str | None = None) -> Tenant:
        name = name or f"School {uuid.uuid4().hex[:6]}"
        slug = slugify(name)
        payload = TenantMinimalCreate(
            name=name,
            code=slug[:20].upper() or "SCHOOL",
            email=f"{slug}@school.example.com",
            phone="+15550100",
        )
        tenant = build_minimal_tenant(db, payload, slug)
        await db.commit()
        return tenant

    return _make


@pytest.fixture()
def auth_headers():
    def _headers(user: User) -> dict[str, str]:
        token = create_access_token(subject=str(user.id), claims={"role": user.role})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture()
async def super_admin(make_user) -> User:
    return await make_user(email="root@platform.example.com", role=UserRole.SUPER_ADMIN)
