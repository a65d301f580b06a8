# ==== SHARED TEST FIXTURES AND CONFIGURATION ==== #

"""
Shared test fixtures and configuration.

Every test gets a fresh in-memory SQLite database with the full schema, a
mocked Redis client, empty definition caches and a clean tenant context.
Tenants, users and bearer headers are built through the real services so
HTTP tests exercise the same gateway checks as production traffic.
"""

import os
import uuid
from datetime import UTC, datetime
from typing import Dict, List
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from freezegun import freeze_time
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool


# ==== FORCE ENVIRONMENT SETUP BEFORE ANY IMPORTS ==== #

# Set environment variables BEFORE importing any app modules
os.environ.update({
    "APP_ENV": "test",
    "DATABASE_URL": "sqlite+aiosqlite://",
    "REDIS_URL": "redis://localhost:6379/1",
    "JWT_SECRET": "test-secret-key-for-testing-only-0123456789abcdef",
    "LOG_LEVEL": "WARNING",
    "LOG_TO_FILES": "false",
    "RATE_LIMIT_ENABLED": "true",
    "RATE_LIMIT_PER_MINUTE": "100",
})

# Now import app modules after environment is set
import easybill.storage.db as db_module
from easybill.main import create_app
from easybill.repositories.users import UserRepository
from easybill.schemas.tenant import TenantRequest
from easybill.security.passwords import hash_password
from easybill.security.tokens import create_access_token
from easybill.services.tenants import TenantService
from easybill.storage.cache import cache_manager
from easybill.storage.db import close_database, create_all, get_session, init_database
from easybill.storage.models import Tenant, User
from easybill.storage.redis import set_redis_client
from easybill.tenancy.context import clear_current_tenant, clear_current_user, tenant_scope


DEFAULT_PASSWORD = "Secret123!"


# ==== DATABASE FIXTURES ==== #


@pytest_asyncio.fixture
async def database():
    """
    Fresh in-memory database with every table created.

    A StaticPool keeps the single SQLite connection alive, so all sessions
    opened during the test see the same database.
    """
    # Force reset any existing database connection
    await close_database()
    db_module.engine = None
    db_module.SessionLocal = None

    init_database(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_all()
    yield
    await close_database()


@pytest_asyncio.fixture
async def db_session(database):
    """Session for service-level tests; committed when the test ends."""
    async with get_session() as session:
        yield session


# ==== EXTERNAL SERVICE MOCKS ==== #


@pytest.fixture(autouse=True)
def fake_redis():
    """
    Mocked Redis client installed for the rate limiter and /info.

    Every request is the first of its window unless a test changes
    ``incr.return_value``.
    """
    client = AsyncMock()
    client.incr.return_value = 1
    client.expire.return_value = True
    client.ttl.return_value = 60
    client.ping.return_value = True
    set_redis_client(client)
    yield client
    set_redis_client(None)


@pytest.fixture(autouse=True)
def clean_state():
    """Empty definition caches and tenant context around each test."""
    cache_manager.clear_all()
    clear_current_tenant()
    clear_current_user()
    yield
    cache_manager.clear_all()
    clear_current_tenant()
    clear_current_user()


# ==== APPLICATION FIXTURES ==== #


@pytest_asyncio.fixture
async def app(database):
    """FastAPI application bound to the test database."""
    yield create_app()


@pytest_asyncio.fixture
async def client(app):
    """HTTP client speaking ASGI to the test application."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# ==== TENANT AND USER HELPERS ==== #


async def make_tenant(name: str, slug: str, **fields) -> Tenant:
    async with get_session() as session:
        return await TenantService(session).create(TenantRequest(name=name, slug=slug, **fields))


async def make_user(
    tenant_id: str,
    username: str,
    roles: List[str],
    password: str = DEFAULT_PASSWORD,
    **fields,
) -> User:
    async with get_session() as session:
        with tenant_scope(tenant_id):
            return await UserRepository(session, tenant_id).add(User(
                username=username,
                email=fields.pop("email", f"{username}@example.com"),
                password_hash=hash_password(password),
                status=fields.pop("status", "ACTIVE"),
                roles=roles,
                failed_login_attempts=0,
                **fields,
            ))


def bearer_headers(user: User) -> Dict[str, str]:
    """Tenant and bearer headers for ``user``."""
    token = create_access_token(user.id, user.tenant_id, user.roles, user.username)
    return {
        "X-Tenant-Id": user.tenant_id,
        "Authorization": f"Bearer {token}",
    }


# ==== TENANT AND HEADER FIXTURES ==== #


@pytest_asyncio.fixture
async def tenant(database) -> Tenant:
    """Tenant in TRIAL status with its default invoice template."""
    return await make_tenant("Acme Retail", "acme-retail")


@pytest_asyncio.fixture
async def other_tenant(database) -> Tenant:
    return await make_tenant("Globex Stores", "globex-stores")


@pytest.fixture
def tenant_id(tenant) -> str:
    return tenant.id


@pytest_asyncio.fixture
async def admin_user(tenant) -> User:
    return await make_user(tenant.id, "acme-admin", ["ROLE_ADMIN", "ROLE_USER"])


@pytest_asyncio.fixture
async def cashier_user(tenant) -> User:
    return await make_user(tenant.id, "acme-cashier", ["ROLE_CASHIER", "ROLE_USER"])


@pytest_asyncio.fixture
async def other_admin(other_tenant) -> User:
    return await make_user(other_tenant.id, "globex-admin", ["ROLE_ADMIN", "ROLE_USER"])


@pytest.fixture
def tenant_headers(tenant) -> Dict[str, str]:
    """Tenant header only, no credentials."""
    return {"X-Tenant-Id": tenant.id}


@pytest.fixture
def admin_headers(admin_user) -> Dict[str, str]:
    return bearer_headers(admin_user)


@pytest.fixture
def cashier_headers(cashier_user) -> Dict[str, str]:
    return bearer_headers(cashier_user)


# ==== TIME AND CORRELATION FIXTURES ==== #


@pytest.fixture
def base_time():
    """Fixed instant for time-dependent tests."""
    return datetime(2025, 8, 17, 10, 0, 0, tzinfo=UTC)


@pytest.fixture
def frozen_time(base_time):
    with freeze_time(base_time) as frozen:
        yield frozen


@pytest.fixture
def correlation_id():
    return str(uuid.uuid4())
